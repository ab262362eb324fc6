"""SQLite dialect."""

from __future__ import annotations

from ..backend import DatabaseEngine
from .base import BaseAdapter


class SqliteAdapter(BaseAdapter):
    """SQLite accepts backtick-quoted identifiers; only the ignore verb differs."""

    engine = DatabaseEngine.SQLITE
    INSERT_IGNORE_VERB = "INSERT OR IGNORE"
