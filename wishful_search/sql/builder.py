"""SQL text for store operations. Identifiers come from the structured DDL, values are always bound."""
from __future__ import annotations

from typing import Sequence


def build_query_prefix(table: str, column: str) -> str:
    """Fixed start of every generated search query: it must return primary keys."""
    return f"SELECT {column} FROM {table}"


def build_insert_sql(table: str, column_count: int) -> str:
    placeholders = ",".join("?" for _ in range(column_count))
    return f"INSERT OR IGNORE INTO {table} VALUES ({placeholders})"


def build_delete_sql(table: str, column: str, keys: Sequence[str]) -> str:
    placeholders = ",".join("?" for _ in keys)
    return f"DELETE FROM {table} WHERE {column} IN ({placeholders})"


def build_distinct_sql(table: str, column: str, sort_by_frequency: bool = False) -> str:
    if sort_by_frequency:
        return f"""SELECT {column}, COUNT({column}) AS frequency
FROM {table}
GROUP BY {column}
ORDER BY frequency DESC, {column};"""
    return f"SELECT DISTINCT {column} FROM {table};"


def build_column_count_sql(table: str) -> str:
    return f"SELECT COUNT(*) FROM pragma_table_info('{table}')"
