"""Exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lexground.models.content import ValidationResult


class LexgroundError(Exception):
    """Base exception for all lexground errors."""


class FetchError(LexgroundError):
    """Raised when a source page cannot be fetched within its budget."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class AuthorityStoreError(LexgroundError):
    """Raised when the authority database is unusable."""


class GroundingValidationError(LexgroundError):
    """Raised in strict mode when a content batch is not fully grounded."""

    def __init__(self, result: ValidationResult) -> None:
        messages = "; ".join(e.message for e in result.errors)
        super().__init__(f"Grounding validation failed: {messages}")
        self.result = result
