"""
Tests for analytics mode, pagination and result column typing.
"""
import asyncio

import pandas as pd
import pytest
from pydantic import ValidationError

from conftest import ScriptedLLM
from wishful_search.analytics import AnalyticsEngine, detect_column_type, paginate_frame
from wishful_search.errors import QueryExecutionFailed
from wishful_search.models import Column, Table

PER_GENRE = "SELECT genre, COUNT(*) AS intCount FROM Movies GROUP BY genre ORDER BY genre"


@pytest.fixture
def analytics(make_engine):
    def _make(queries):
        engine, _ = make_engine()
        llm = ScriptedLLM(queries=queries)
        return AnalyticsEngine(engine.tables, engine.db, llm), llm
    return _make


class TestAsk:
    """Test question to DataFrame."""

    def test_frame(self, analytics):
        """Test the model's SELECT runs into a DataFrame."""
        engine, llm = analytics([PER_GENRE])
        df = asyncio.run(engine.ask("how many movies per genre?"))
        assert df.to_dict("records") == [
            {"genre": "Animation", "intCount": 1},
            {"genre": "Crime", "intCount": 1},
            {"genre": "Drama", "intCount": 1},
        ]
        messages = llm.query_calls[0]["messages"]
        assert messages[-1] == {"role": "assistant", "content": "SELECT "}
        assert "currencyXXX" in messages[0]["content"]

    def test_reflection(self, analytics):
        """Test one reflection round fixes a broken query."""
        engine, llm = analytics(["SELECT genre, COUNT(*) FROM Film GROUP BY genre", PER_GENRE])
        df = asyncio.run(engine.ask("how many movies per genre?"))
        assert len(df) == 3
        assert "no such table" in llm.query_calls[1]["messages"][-1]["content"]

    def test_second_failure(self, analytics):
        """Test a second failure propagates."""
        engine, _ = analytics(["SELECT x FROM Film", "SELECT y FROM Film"])
        with pytest.raises(QueryExecutionFailed):
            asyncio.run(engine.ask("anything"))

    def test_column_types(self, analytics):
        """Test result columns are typed by name."""
        engine, _ = analytics([PER_GENRE])
        df = asyncio.run(engine.ask("how many movies per genre?"))
        assert engine.column_types(df) == {"genre": {"type": "unknown"}, "intCount": {"type": "int"}}


class TestPaginateFrame:
    """Test paging result frames."""

    def test_pages(self):
        """Test page slices and totals."""
        df = pd.DataFrame({"intN": range(5)})
        page = paginate_frame(df, max_rows=2, page=3)
        assert page["frame"]["intN"].tolist() == [4]
        assert page["total_rows"] == 5
        assert page["total_pages"] == 3
        assert page["rows_per_page"] == 2

    def test_past_the_end(self):
        """Test pages past the end are empty."""
        page = paginate_frame(pd.DataFrame({"a": [1]}), max_rows=10, page=2)
        assert page["frame"].empty
        assert page["total_pages"] == 1

    def test_invalid(self):
        """Test bad paging arguments raise."""
        with pytest.raises(ValueError):
            paginate_frame(pd.DataFrame(), max_rows=0)
        with pytest.raises(ValueError):
            paginate_frame(pd.DataFrame(), page=0)


class TestDetectColumnType:
    """Test result column typing."""

    def test_declared_hint_wins(self):
        """Test stats_column_type on a column takes priority."""
        tables = [Table(name="T", columns=[
            Column(name="rating", column_spec="REAL", stats_column_type={"type": "float"}),
        ])]
        assert detect_column_type(tables, "rating") == {"type": "float"}

    def test_declared_hint_is_string_map(self):
        """Test stats_column_type only takes string values."""
        with pytest.raises(ValidationError):
            Column(name="rating", column_spec="REAL", stats_column_type={"type": ["float"]})

    def test_prefixes(self):
        """Test name prefixes decide the type."""
        assert detect_column_type([], "intCount") == {"type": "int"}
        assert detect_column_type([], "dateFirst") == {"type": "date"}
        assert detect_column_type([], "boolHasSequel") == {"type": "bool"}
        assert detect_column_type([], "currencyUSDTotal") == {"type": "currency", "code": "USD"}

    def test_unknown(self):
        """Test unprefixed columns are unknown."""
        assert detect_column_type([], "genre") == {"type": "unknown"}
