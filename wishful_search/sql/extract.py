"""
Turn raw model output into a bare partial query.

The model is anchored on a query prefix (e.g. `SELECT id FROM Movies`) and is
expected to continue it. In practice it also wraps SQL in code fences, echoes
the prefix, rewrites the whole statement or adds trailing statements and
commentary. extract_query undoes all of that, in this order:

1. keep only the contents of a fenced sql block
2. strip echoed copies of the prefix
3. strip a re-derived `SELECT ... FROM <prefix table>` clause (top-level FROM only)
4. cut at the first semicolon
"""
from __future__ import annotations

import re
from typing import Optional

FENCED_SQL_RE = re.compile(r"```(?:sql)?([\s\S]*?)```", re.IGNORECASE)
STRAY_FENCE_RE = re.compile(r"```(?:sql)?", re.IGNORECASE)
PREFIX_TABLE_RE = re.compile(r"^\s*select\s+[\s\S]+?\s+from\s+(\S+)\s*$", re.IGNORECASE)
SELECT_START_RE = re.compile(r"select\b", re.IGNORECASE)


def _strip_fences(text: str) -> str:
    match = FENCED_SQL_RE.search(text)
    if match:
        text = match.group(1)
    return STRAY_FENCE_RE.sub("", text).strip()


def _strip_prefix(text: str, query_prefix: str) -> Optional[str]:
    prefix = query_prefix.strip()
    if not prefix or not text.lower().startswith(prefix.lower()):
        return None
    rest = text[len(prefix):]
    # `SELECT` must not eat the start of `SELECTED`
    if rest and (rest[0].isalnum() or rest[0] == "_") and (prefix[-1].isalnum() or prefix[-1] == "_"):
        return None
    return rest.strip()


def _top_level_from_re(query_prefix: str) -> Optional[re.Pattern]:
    match = PREFIX_TABLE_RE.match(query_prefix)
    if not match:
        return None
    table = re.escape(match.group(1))
    return re.compile(rf"\bfrom\s+{table}\b\s*", re.IGNORECASE)


def _strip_redundant_select(text: str, from_re: re.Pattern) -> Optional[str]:
    """Drop `SELECT ... FROM <table>` when the FROM is the statement's own, not a subquery's."""
    if not SELECT_START_RE.match(text):
        return None
    depth = 0
    quote = None
    for idx, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0:
            match = from_re.match(text, idx)
            if match:
                return text[match.end():].strip()
    return None


def extract_query(raw: str, query_prefix: str) -> str:
    """
    Extract the partial query that follows query_prefix from model output.

    Idempotent: running it again on its own output changes nothing. The
    result never starts with the prefix and holds at most one statement.
    """
    text = _strip_fences(raw or "")
    from_re = _top_level_from_re(query_prefix)

    while True:
        stripped = _strip_prefix(text, query_prefix)
        if stripped is None and from_re is not None:
            stripped = _strip_redundant_select(text, from_re)
        if stripped is None:
            break
        text = stripped

    semicolon = text.find(";")
    if semicolon != -1:
        text = text[:semicolon].strip()
    return text
