from __future__ import annotations

from typing import Optional


class FractranError(Exception):
    """Base class for engine errors."""


class ParseError(FractranError, ValueError):
    """A fraction in the program source is not a positive-integer ratio."""

    def __init__(self, message: str, *, index: Optional[int] = None, text: Optional[str] = None) -> None:
        if index is not None:
            message = f"rule {index} ({text!r}): {message}"
        super().__init__(message)
        self.index = index
        self.text = text


class RegisterError(FractranError, ValueError):
    """Initial registers are not a valid prime factorization."""
