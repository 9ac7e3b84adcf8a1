"""JSON extraction from LLM output.

Models are asked for raw JSON but sometimes wrap it in markdown fences or
surround it with prose. These helpers recover the payload without raising.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from lexground.logging import get_logger

logger = get_logger(__name__)

_FENCE_JSON_RE = re.compile(r"```json\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)
_FENCE_ANY_RE = re.compile(r"```\s*\n?(.*?)\n?```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}", re.DOTALL)


def _strip_fences(text: str) -> str:
    m = _FENCE_JSON_RE.search(text) or _FENCE_ANY_RE.search(text)
    if m:
        return m.group(1).strip()
    return text


def _first_index(text: str, ch: str) -> int:
    i = text.find(ch)
    return len(text) if i == -1 else i


def extract_json_value(text: str) -> Any | None:
    """Extract a JSON object or array from text.

    Strategy (strict to lenient):
        1. Markdown fenced block (```json ... ``` or ``` ... ```).
        2. The whole text, if it looks like JSON.
        3. The outermost ``[...]`` or ``{...}`` span, whichever opens first.

    Returns ``None`` instead of raising when nothing parses.
    """

    if not text:
        return None

    cleaned = _strip_fences(text.strip())

    if cleaned[:1] in ("{", "[") and cleaned[-1:] in ("}", "]"):
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            logger.debug("extract_json_value: whole-text JSON parse failed")

    pairs = sorted((("[", "]"), ("{", "}")), key=lambda p: _first_index(cleaned, p[0]))
    for open_ch, close_ch in pairs:
        start = cleaned.find(open_ch)
        end = cleaned.rfind(close_ch)
        if start == -1 or end <= start:
            continue
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            logger.debug("extract_json_value: span %s...%s parse failed", open_ch, close_ch)

    return None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Extract a single JSON object from text, or ``None``."""

    value = extract_json_value(text)
    if isinstance(value, dict):
        return value

    m = _OBJECT_RE.search(_strip_fences((text or "").strip()))
    if m:
        try:
            obj = json.loads(m.group(0))
        except json.JSONDecodeError:
            logger.debug("extract_json_object: regex-based JSON parse failed")
            return None
        if isinstance(obj, dict):
            return obj
    return None
