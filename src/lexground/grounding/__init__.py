"""Grounding validation."""

from __future__ import annotations

from lexground.grounding.validator import (
    GroundingValidator,
    create_fallback_item,
    is_fallback_item,
)

__all__ = ["GroundingValidator", "create_fallback_item", "is_fallback_item"]
