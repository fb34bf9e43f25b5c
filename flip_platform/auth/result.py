"""Result values returned by auth service operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from flip_platform.core.exceptions import AuthOperationError

T = TypeVar("T")


@dataclass(frozen=True)
class AuthResult(Generic[T]):
    """Either ``data`` or a human-readable ``error``, never both."""

    data: T | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.data is not None and self.error is not None:
            raise ValueError("AuthResult cannot carry both data and an error")

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T | None = None) -> "AuthResult[T]":
        return cls(data=data)

    @classmethod
    def fail(cls, error: str) -> "AuthResult[T]":
        return cls(error=error)

    def unwrap(self, default_message: str = "Operation failed") -> T | None:
        """Return ``data`` or raise ``AuthOperationError``."""
        if self.error is not None:
            raise AuthOperationError(self.error or default_message)
        return self.data
