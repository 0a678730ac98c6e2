"""Base error definitions for unbox."""

from typing import Any, Dict


class UnboxError(Exception):
    """Base exception for all unbox errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context
