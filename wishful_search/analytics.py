"""
Analytics mode: free-form SELECTs over the same store, results as DataFrames.

Where search returns primary keys, analytics lets the model pick its own
columns and aggregates. The result frame is paged and typed for display.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

import pandas as pd

from .base_engine import BASE_QUERY_PREFIX, BaseEngine
from .errors import QueryExecutionFailed
from .models import LLMCallFunc, LLMQuery, QQTurn, Table
from .sql.executor import SearchableDatabase

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = ("str", "int", "float", "date", "bool", "enum", "json")
DEFAULT_PAGE_ROWS = 200


def detect_column_type(tables: List[Table], column: str) -> Dict[str, str]:
    """
    Type hint for a result column.

    Declared stats_column_type wins; otherwise the column name prefix
    (intCount, dateFirstSeen, currencyUSDTotal...) decides.
    """
    for table in tables:
        for col in table.columns:
            if col.stats_column_type and col.name == column:
                return dict(col.stats_column_type)

    lowered = column.lower()
    for type_name in PRIMITIVE_TYPES:
        if lowered.startswith(type_name):
            return {"type": type_name}

    if lowered.startswith("currency"):
        return {"type": "currency", "code": column[len("currency"):len("currency") + 3].upper()}

    return {"type": "unknown"}


def paginate_frame(df: pd.DataFrame, max_rows: int = DEFAULT_PAGE_ROWS, page: int = 1) -> Dict[str, Any]:
    """One page of a result frame plus the totals a UI needs."""
    if max_rows <= 0:
        raise ValueError("max_rows must be positive.")
    if page < 1:
        raise ValueError("page starts at 1.")
    start = (page - 1) * max_rows
    return {
        "frame": df.iloc[start:start + max_rows],
        "page": page,
        "rows_per_page": max_rows,
        "total_rows": len(df),
        "total_pages": max(1, -(-len(df) // max_rows)),
    }


class AnalyticsEngine(BaseEngine):
    search_type = "analytics"

    def __init__(
        self,
        tables: List[Table],
        db: SearchableDatabase,
        call_llm: Optional[LLMCallFunc],
        enable_todays_date: bool = False,
        query_prefix: str = BASE_QUERY_PREFIX,
    ):
        super().__init__(tables, call_llm, enable_todays_date, query_prefix)
        self.db = db

    def run_query(self, query: LLMQuery) -> pd.DataFrame:
        sql = f"{query.query_prefix.rstrip()} {query.partial_query}"
        try:
            return self.db.query_frame(sql)
        except (sqlite3.Error, pd.errors.DatabaseError, ValueError) as e:
            raise QueryExecutionFailed(sql, str(e)) from e

    def column_types(self, df: pd.DataFrame) -> Dict[str, Dict[str, str]]:
        return {str(c): detect_column_type(self.tables, str(c)) for c in df.columns}

    async def ask(
        self,
        question: str,
        history: Optional[List[QQTurn]] = None,
        few_shot: Optional[List[QQTurn]] = None,
        reflect_and_fix: bool = True,
    ) -> pd.DataFrame:
        """Question in, DataFrame out. One reflection round on a failed query."""
        messages = self.generate_prompt(question, history, few_shot)
        query = await self.generate_query(messages)
        logger.debug("Analytics query: %s", query.full_query)
        try:
            return self.run_query(query)
        except QueryExecutionFailed as e:
            if not reflect_and_fix:
                raise
            query = await self.generate_reflected_query(messages, query, e.error)
            logger.debug("Reflected analytics query: %s", query.full_query)
            return self.run_query(query)
