"""Exceptions raised by wishful-search."""
from __future__ import annotations


class WishfulSearchError(Exception):
    """Base class for every error raised by this package."""


class SchemaInvalid(WishfulSearchError, ValueError):
    """The structured table list cannot be used to build an engine."""


class ModelUnavailable(WishfulSearchError, RuntimeError):
    """The model call returned no text."""


NoResponseFromModel = ModelUnavailable


class QueryExecutionFailed(WishfulSearchError):
    """The store rejected a generated query."""

    def __init__(self, query: str, error: str):
        super().__init__(f"Query failed: {error}\nQuery: {query}")
        self.query = query
        self.error = error


class AnalysisUnparseable(WishfulSearchError, ValueError):
    """The model critique could not be turned into an Analysis, even after repair."""


class NoObjectRetentionConfigured(WishfulSearchError, RuntimeError):
    """Auto-search needs full objects, but the engine only keeps keys."""


class SearchInProgress(WishfulSearchError, RuntimeError):
    """A question is still waiting for its query."""
