"""
SQLite store behind the search engine.

Holds the relational copy of every inserted object. Objects are mapped to
rows by a caller-supplied function that returns one list of rows per table,
in table order (primary table first).
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

import pandas as pd

from .. import settings
from ..enums import NULL_MARKER
from ..models import DBColumn, InsertionError
from .builder import (
    build_column_count_sql,
    build_delete_sql,
    build_distinct_sql,
    build_insert_sql,
)
from .safety import safe_select_only

logger = logging.getLogger(__name__)

T = TypeVar("T")

ObjectToRows = Callable[[Any], List[List[Sequence[Any]]]]


def _to_str(value: Any) -> str:
    return NULL_MARKER if value is None else str(value)


def execute_sql_query(sql: str, conn: sqlite3.Connection) -> pd.DataFrame:
    """Execute a SELECT-only query on an open connection and return a DataFrame."""
    return pd.read_sql_query(safe_select_only(sql), conn)


class SearchableDatabase(Generic[T]):
    """
    sqlite3 database created from a storage DDL string.

    Not thread-safe: one instance belongs to one engine.
    """

    def __init__(
        self,
        ddl: str,
        name: str,
        key: DBColumn,
        object_to_rows: ObjectToRows,
        db_path: Optional[str] = None,
    ):
        self.ddl = ddl
        self.name = name
        self.key = key
        self.object_to_rows = object_to_rows
        self.db_path = db_path or settings.db_path()
        self.conn = self._connect()
        self.table_names = self._table_names()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.executescript(self.ddl)
        return conn

    def _table_names(self) -> List[str]:
        rows = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY rowid"
        ).fetchall()
        names = [r[0] for r in rows]
        if not names:
            raise ValueError("No tables found in database.")
        if self.key.table not in names:
            raise ValueError(f"Primary table {self.key.table} not found in database.")
        return [self.key.table] + [n for n in names if n != self.key.table]

    def _column_count(self, table: str) -> int:
        return self.conn.execute(build_column_count_sql(table)).fetchone()[0]

    def execute(self, ddl: str) -> None:
        self.conn.executescript(ddl)

    def insert(self, objects: Sequence[T], fail_fast: bool = False) -> List[InsertionError]:
        """
        Insert objects, one transaction for the whole batch.

        fail_fast: roll back everything and raise on the first bad object.
        Otherwise bad rows are skipped and reported with their object index.
        """
        statements = {
            table: build_insert_sql(table, self._column_count(table)) for table in self.table_names
        }
        errors: List[InsertionError] = []

        with self.conn:
            for index, obj in enumerate(objects):
                try:
                    table_rows = self.object_to_rows(obj)
                    if len(table_rows) != len(self.table_names):
                        raise ValueError(
                            f"Expected rows for {len(self.table_names)} tables, got {len(table_rows)}."
                        )
                except ValueError as e:
                    if fail_fast:
                        raise
                    errors.append(InsertionError(index=index, error=str(e)))
                    continue

                for table, rows in zip(self.table_names, table_rows):
                    for row in rows:
                        try:
                            self.conn.execute(statements[table], tuple(row))
                        except sqlite3.Error as e:
                            if fail_fast:
                                raise ValueError(f"Error inserting object {index} into {table}: {e}") from e
                            errors.append(InsertionError(index=index, error=f"{table}: {e}"))

        if errors:
            logger.warning("%d rows failed to insert into %s.", len(errors), self.name)
        return errors

    def delete(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        with self.conn:
            self.conn.execute(build_delete_sql(self.key.table, self.key.column, keys), tuple(keys))

    def raw_query(self, query: str) -> List[str]:
        """Run a single SELECT and return the first column of every row as strings."""
        stmt = safe_select_only(query)
        rows = self.conn.execute(stmt).fetchall()
        return [_to_str(row[0]) for row in rows]

    def query_frame(self, query: str) -> pd.DataFrame:
        return execute_sql_query(query, self.conn)

    def distinct_values(self, table: str, column: str, sort_by_frequency: bool = False) -> List[str]:
        """Distinct values of a column, most frequent first when asked. NULL comes back as 'NULL'."""
        rows = self.conn.execute(build_distinct_sql(table, column, sort_by_frequency)).fetchall()
        return [_to_str(row[0]) for row in rows]

    def reset(self) -> None:
        """Drop everything and recreate the empty schema."""
        self.conn.close()
        if self.db_path != ":memory:":
            self.conn = sqlite3.connect(self.db_path)
            with self.conn:
                for table in reversed(self.table_names):
                    self.conn.execute(f"DROP TABLE IF EXISTS {table}")
            self.conn.close()
        self.conn = self._connect()

    def close(self) -> None:
        self.conn.close()
