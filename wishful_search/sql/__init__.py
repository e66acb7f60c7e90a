"""SQL utilities for wishful-search."""
from .executor import SearchableDatabase, execute_sql_query
from .extract import extract_query
from .safety import safe_select_only

__all__ = ["SearchableDatabase", "execute_sql_query", "extract_query", "safe_select_only"]
