"""
Outcome type returned by every index operation.

Walker, watcher and library calls report expected failures (missing folder,
bad id, failed subscription) as ``Result.Err`` with an ``ErrorCode``; the
HTTP layer turns the same object into its JSON envelope.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from .types import ErrorCode

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    code: str = "OK"
    # Side-channel details such as ``total``, ``duration_ms`` or ``tracked``.
    meta: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def Ok(data: T, **meta: Any) -> "Result[T]":
        return Result(ok=True, data=data, code="OK", meta=meta)

    @staticmethod
    def Err(code: ErrorCode | str | Enum, error: str, **meta: Any) -> "Result[T]":
        code_value = code.value if isinstance(code, Enum) else code
        return Result(ok=False, error=error, code=str(code_value), meta=meta)

    def to_envelope(self) -> dict[str, Any]:
        """``{ok, data, error, code, meta}`` as sent to HTTP clients."""
        return {
            "ok": self.ok,
            "data": self.data,
            "error": self.error,
            "code": self.code,
            "meta": self.meta,
        }
