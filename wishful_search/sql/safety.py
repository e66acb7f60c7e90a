from __future__ import annotations

import re

SELECT_RE = re.compile(r"^\s*select\b", re.IGNORECASE)


def safe_select_only(sql: str) -> str:
    """
    Ensure a raw query is a single SELECT statement.

    A single trailing semicolon is tolerated and removed.
    """
    stmt = (sql or "").strip()
    if stmt.endswith(";"):
        stmt = stmt[:-1].rstrip()
    if not SELECT_RE.match(stmt):
        raise ValueError("Raw query to db must start with SELECT.")
    if ";" in stmt:
        raise ValueError("Raw query to db must be a single statement.")
    return stmt
