"""
3D asset index backend: keeps Asset/Folder records in sync with watched
directory trees.
"""
