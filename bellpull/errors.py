"""Tagged application error shared by every pipeline stage."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Which collaborator a failure came from."""

    STORAGE = "storage"
    LLM = "llm"
    VALIDATION = "validation"
    DELIVERY = "delivery"
    UNEXPECTED = "unexpected"


class AppError(Exception):
    """A failure with a ``kind`` and the underlying ``cause``, if any.

    Raise with ``raise AppError(...) from exc`` so the cause is also
    chained for tracebacks.
    """

    def __init__(
        self, kind: ErrorKind, message: str, cause: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"

    @classmethod
    def wrap(cls, kind: ErrorKind, message: str, exc: BaseException) -> AppError:
        """Build an error around *exc*, passing AppErrors through unchanged."""
        if isinstance(exc, AppError):
            return exc
        return cls(kind, message, cause=exc)
