"""MySQL / MariaDB dialect."""

from __future__ import annotations

from ..backend import DatabaseEngine
from .base import BaseAdapter


class MysqlAdapter(BaseAdapter):
    """Backtick quoting, LIMIT/OFFSET pagination and INSERT IGNORE."""

    engine = DatabaseEngine.MYSQL
