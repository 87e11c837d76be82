"""Repositories implementation package."""

from .kv_entry_repository import KvEntryRepository

__all__ = ["KvEntryRepository"]
