#!/usr/bin/env python
"""
Ask questions about a small movie catalog.

Run with: python -m scripts.movies_demo [auto_rounds]

Needs OPENAI_API_KEY (and optionally WISHFUL_MODEL / WISHFUL_BASE_URL) in .env.
"""
import sys

from wishful_search import (
    CharLimitedEnumSettings,
    Column,
    DBColumn,
    ExhaustiveEnumSettings,
    ForeignKey,
    LLMConfig,
    MinMaxEnumSettings,
    SearchEngine,
    Table,
    configure_model,
    run_agent,
)

TABLES = [
    Table(name="Movies", columns=[
        Column(name="id", column_spec="TEXT PRIMARY KEY", description="IMDB id"),
        Column(
            name="title",
            column_spec="TEXT",
            description="Title of the movie",
            dynamic_enum_settings=CharLimitedEnumSettings(char_limit=300),
        ),
        Column(
            name="released",
            column_spec="TEXT",
            description="Release date",
            dynamic_enum_settings=MinMaxEnumSettings(format="DATE"),
        ),
        Column(
            name="runtime",
            column_spec="INTEGER",
            description="Runtime in minutes",
            dynamic_enum_settings=MinMaxEnumSettings(format="NUMBER"),
        ),
        Column(
            name="rating",
            column_spec="REAL",
            description="IMDB rating out of 10",
            dynamic_enum_settings=MinMaxEnumSettings(format="NUMBER"),
        ),
        Column(
            name="genre",
            column_spec="TEXT",
            dynamic_enum_settings=ExhaustiveEnumSettings(),
        ),
    ]),
    Table(name="Cast", columns=[
        Column(
            name="movie_id",
            column_spec="TEXT",
            foreign_key=ForeignKey(table="Movies", column="id"),
        ),
        Column(
            name="name",
            column_spec="TEXT",
            description="Actor name",
            dynamic_enum_settings=ExhaustiveEnumSettings(top_k=20),
        ),
    ]),
]

MOVIES = [
    ("tt0114709", "Toy Story", "1995-11-22", 81, 8.3, "Animation", ["Tom Hanks", "Tim Allen"]),
    ("tt0162222", "Cast Away", "2000-12-22", 143, 7.8, "Drama", ["Tom Hanks", "Helen Hunt"]),
    ("tt0113277", "Heat", "1995-12-15", 170, 8.3, "Crime", ["Al Pacino", "Robert De Niro"]),
    ("tt0109830", "Forrest Gump", "1994-07-06", 142, 8.8, "Drama", ["Tom Hanks", "Robin Wright"]),
    ("tt0133093", "The Matrix", "1999-03-31", 136, 8.7, "Action", ["Keanu Reeves", "Carrie-Anne Moss"]),
    ("tt0107290", "Jurassic Park", "1993-06-11", 127, 8.2, "Adventure", ["Sam Neill", "Laura Dern"]),
    ("tt0120338", "Titanic", "1997-12-19", 194, 7.9, "Romance", ["Leonardo DiCaprio", "Kate Winslet"]),
    ("tt0118715", "The Big Lebowski", "1998-03-06", 117, 8.1, "Comedy", ["Jeff Bridges", "John Goodman"]),
]


def movie_to_rows(movie):
    movie_id, title, released, runtime, rating, genre, cast = movie
    return [
        [(movie_id, title, released, runtime, rating, genre)],
        [(movie_id, name) for name in cast],
    ]


def movie_str(movie):
    return f"{movie[1]} ({movie[2][:4]}, {movie[5]}, {movie[4]}/10)"


def main():
    auto_rounds = int(sys.argv[1]) if len(sys.argv) > 1 else 0
    adapter = configure_model()

    engine = SearchEngine.create(
        "movies",
        TABLES,
        DBColumn(table="Movies", column="id"),
        movie_to_rows,
        adapter.llm_config if adapter else LLMConfig(),
        adapter.call_llm if adapter else None,
        get_key_from_object=lambda m: m[0],
        sort_enums_by_frequency=True,
    )
    errors = engine.insert(MOVIES)
    for err in errors:
        print(f"⚠️  Could not insert movie {err.index}: {err.error}")

    run_agent(engine, movie_str, auto_rounds=auto_rounds)


if __name__ == "__main__":
    main()
