"""Persistent storage: authority records, passages and the missing-authority log."""

from __future__ import annotations

from lexground.memory.authority_store import AuthorityStore, UpsertOutcome
from lexground.memory.database import AuthorityDatabase
from lexground.memory.missing_authority_log import MissingAuthorityLog

__all__ = ["AuthorityDatabase", "AuthorityStore", "MissingAuthorityLog", "UpsertOutcome"]
