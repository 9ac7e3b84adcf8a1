"""ID and hash utilities."""

from __future__ import annotations

import hashlib
import uuid


def new_id(prefix: str) -> str:
    """Return a random identifier like ``auth_3f2a...``, unique across processes."""

    return f"{prefix}_{uuid.uuid4().hex}"


def new_authority_id() -> str:
    return new_id("auth")


def new_passage_id() -> str:
    return new_id("psg")


def new_log_id() -> str:
    return new_id("mal")


def sha256_hex(text: str) -> str:
    """Hex SHA-256 of UTF-8 text."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()
