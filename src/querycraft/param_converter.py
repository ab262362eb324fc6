"""Parameter placeholder conversion for PEP 249 drivers.

Compiled statements always use "?" (qmark) placeholders. DB-API modules
declare their own ``paramstyle``; this module rewrites the placeholders so a
statement can be handed to any of them.

Supported target styles (PEP 249):
    - qmark     ``?``          (sqlite3, pyodbc)
    - format    ``%s``         (pymysql, psycopg)
    - pyformat  ``%(p1)s``     (psycopg, mysqlclient)
    - numeric   ``:1``         (oracledb)
    - named     ``:p1``        (oracledb, sqlite3)

Placeholders inside quoted string literals and quoted identifiers are left
alone. For the percent styles, literal ``%`` characters are doubled so the
driver does not read them as format directives.
"""

from __future__ import annotations

import re
from typing import Any

# Quoted literals/identifiers, or a bare "?" placeholder
TOKEN_PATTERN = re.compile(r"""('(?:[^']|'')*'|"(?:[^"]|"")*"|`[^`]*`|\[[^\]]*\])|(\?)|(%)""")

PARAMSTYLES = ("qmark", "format", "pyformat", "numeric", "named")


class ParamConverter:
    """Converts "?" placeholders to a DB-API paramstyle.

    Example:
        converter = ParamConverter("format")
        sql = "SELECT * FROM users WHERE id = ? AND name LIKE '%a%'"
        converter.convert(sql)
        # -> "SELECT * FROM users WHERE id = %s AND name LIKE '%%a%%'"
    """

    def __init__(self, paramstyle: str):
        """Initialize converter for a target paramstyle.

        Args:
            paramstyle: The DB-API module's ``paramstyle`` attribute

        Raises:
            ValueError: If the paramstyle is not defined by PEP 249
        """
        if paramstyle not in PARAMSTYLES:
            raise ValueError(
                f"Unsupported paramstyle '{paramstyle}'. Expected one of: {', '.join(PARAMSTYLES)}"
            )
        self.paramstyle = paramstyle

    def convert(self, sql: str) -> str:
        """Convert SQL placeholders to the target paramstyle.

        Args:
            sql: SQL statement with "?" placeholders

        Returns:
            SQL statement with placeholders in the target format
        """
        if self.paramstyle == "qmark":
            return sql

        escape_percent = self.paramstyle in ("format", "pyformat")
        counter = [0]

        def replace(match: re.Match[str]) -> str:
            quoted, placeholder, percent = match.groups()
            if quoted is not None:
                return quoted.replace("%", "%%") if escape_percent else quoted
            if percent is not None:
                return "%%" if escape_percent else percent
            counter[0] += 1
            return self._placeholder(counter[0])

        return TOKEN_PATTERN.sub(replace, sql)

    def convert_params(self, params: tuple[Any, ...] | list[Any] | None) -> tuple[Any, ...] | dict[str, Any]:
        """Convert positional parameters to the container the style expects.

        Args:
            params: Positional parameters in placeholder order

        Returns:
            Tuple for positional styles, dict keyed p1, p2... for named styles
        """
        values = tuple(params or ())
        if self.paramstyle in ("named", "pyformat"):
            return {f"p{i}": value for i, value in enumerate(values, start=1)}
        return values

    def _placeholder(self, index: int) -> str:
        """Get the placeholder for the 1-based parameter index."""
        if self.paramstyle == "format":
            return "%s"
        elif self.paramstyle == "pyformat":
            return f"%(p{index})s"
        elif self.paramstyle == "numeric":
            return f":{index}"
        else:  # named
            return f":p{index}"


def convert_sql_for_paramstyle(sql: str, paramstyle: str) -> str:
    """Convenience function to convert SQL placeholders for a paramstyle.

    Example:
        >>> convert_sql_for_paramstyle("SELECT * FROM users WHERE id = ?", "numeric")
        "SELECT * FROM users WHERE id = :1"
    """
    return ParamConverter(paramstyle).convert(sql)
