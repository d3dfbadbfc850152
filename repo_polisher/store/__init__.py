"""Persistence for projects, issues and PR drafts."""

from repo_polisher.store.base import PolisherStore
from repo_polisher.store.json_store import JsonStore

__all__ = ["JsonStore", "PolisherStore"]
