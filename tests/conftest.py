"""
Pytest configuration and shared fixtures.
"""
import json

import pytest

from wishful_search.engine import SearchEngine
from wishful_search.models import (
    CharLimitedEnumSettings,
    Column,
    DBColumn,
    ExhaustiveEnumSettings,
    ForeignKey,
    LLMConfig,
    MinMaxEnumSettings,
    Table,
)
from wishful_search.prompts import JSON_ONLY_SYSTEM

PRIMARY_KEY = DBColumn(table="Movies", column="id")
QUERY_PREFIX = "SELECT id FROM Movies"

MOVIES = [
    {
        "id": "m1",
        "title": "Toy Story",
        "year": 1995,
        "released": "1995-11-22",
        "rating": 8.3,
        "genre": "Animation",
        "poster_url": "https://example.com/toy-story.jpg",
        "actors": ["Tom Hanks", "Tim Allen"],
    },
    {
        "id": "m2",
        "title": "Cast Away",
        "year": 2000,
        "released": "2000-12-22",
        "rating": 7.8,
        "genre": "Drama",
        "poster_url": "https://example.com/cast-away.jpg",
        "actors": ["Tom Hanks", "Helen Hunt"],
    },
    {
        "id": "m3",
        "title": "Heat",
        "year": 1995,
        "released": "1995-12-15",
        "rating": 8.3,
        "genre": "Crime",
        "poster_url": "https://example.com/heat.jpg",
        "actors": ["Al Pacino", "Robert De Niro"],
    },
]


def movie_tables():
    """Fresh table definitions (enum data is written onto them)."""
    return [
        Table(
            name="Movies",
            columns=[
                Column(name="id", column_spec="TEXT PRIMARY KEY"),
                Column(
                    name="title",
                    column_spec="TEXT",
                    description="Title of the movie",
                    dynamic_enum_settings=CharLimitedEnumSettings(char_limit=100),
                ),
                Column(
                    name="year",
                    column_spec="INTEGER",
                    dynamic_enum_settings=MinMaxEnumSettings(format="NUMBER"),
                ),
                Column(
                    name="released",
                    column_spec="TEXT",
                    description="Release date",
                    dynamic_enum_settings=MinMaxEnumSettings(format="DATE"),
                ),
                Column(name="rating", column_spec="REAL", static_examples=["7.5", "8.1"]),
                Column(
                    name="genre",
                    column_spec="TEXT",
                    dynamic_enum_settings=ExhaustiveEnumSettings(),
                ),
                Column(name="poster_url", column_spec="TEXT", visible_to_llm=False),
            ],
        ),
        Table(
            name="Actors",
            columns=[
                Column(
                    name="movie_id",
                    column_spec="TEXT",
                    foreign_key=ForeignKey(table="Movies", column="id"),
                ),
                Column(
                    name="name",
                    column_spec="TEXT",
                    dynamic_enum_settings=ExhaustiveEnumSettings(top_k=3),
                ),
            ],
        ),
    ]


def movie_to_rows(movie):
    return [
        [(
            movie["id"],
            movie["title"],
            movie["year"],
            movie["released"],
            movie["rating"],
            movie["genre"],
            movie["poster_url"],
        )],
        [(movie["id"], actor) for actor in movie["actors"]],
    ]


def movie_key(movie):
    return movie["id"]


def movie_str(movie):
    return f"{movie['title']} ({movie['year']}, {movie['genre']})"


class ScriptedLLM:
    """
    Async stand-in for a model. Query prompts are answered from `queries`,
    JSON prompts (analysis and repair) from `analyses`, in order.
    """

    def __init__(self, queries=(), analyses=()):
        self.queries = list(queries)
        self.analyses = list(analyses)
        self.calls = []

    @property
    def query_calls(self):
        return [c for c in self.calls if c["kind"] == "query"]

    @property
    def analysis_calls(self):
        return [c for c in self.calls if c["kind"] == "analysis"]

    async def __call__(self, messages, query_prefix=None):
        is_json = messages[0]["content"].startswith(JSON_ONLY_SYSTEM)
        kind = "analysis" if is_json else "query"
        self.calls.append({"kind": kind, "messages": messages, "query_prefix": query_prefix})
        queue = self.analyses if is_json else self.queries
        if not queue:
            raise AssertionError(f"ScriptedLLM ran out of {kind} responses")
        return queue.pop(0)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for name in ("WISHFUL_DB_PATH", "WISHFUL_MODEL", "WISHFUL_BASE_URL", "WISHFUL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_engine():
    """Build a seeded movies engine around a ScriptedLLM."""
    engines = []

    def _make(queries=(), analyses=(), retain=True, seed=True, **kwargs):
        llm = ScriptedLLM(queries, analyses)
        engine = SearchEngine.create(
            "movies",
            movie_tables(),
            PRIMARY_KEY,
            movie_to_rows,
            kwargs.pop("llm_config", LLMConfig()),
            llm,
            get_key_from_object=movie_key if retain else None,
            db_path=":memory:",
            **kwargs,
        )
        if seed:
            engine.insert(MOVIES)
        engines.append(engine)
        return engine, llm

    yield _make

    for engine in engines:
        engine.close()


def analysis_json(suitability, better_question="", desc="ok"):
    return json.dumps({
        "suitabilityDesc": desc,
        "suitability": suitability,
        "desires": ["movies"],
        "thoughts": [],
        "betterFilters": [],
        "betterQuestion": better_question,
    })


# Markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
