from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from . import settings
from .engine import SearchEngine
from .errors import WishfulSearchError

INTRO = """wishful-search
Ask questions about the data in plain English. Follow-up questions refine
the previous ones ("only the ones after 2010", "sort by rating instead").

Commands: reset (forget the conversation), help, exit."""

HELP = """Examples:
  movies with Tom Hanks
  only the comedies
  Ignore all previous filters. something short for tonight

Type reset to start a new conversation."""


def _print_results(results: list, stringify: Callable[[Any], str]) -> None:
    if not results:
        print("No results.\n")
        return
    print(f"✅ {len(results)} results. Top result:")
    print(f"  {stringify(results[0])}\n")


def run_agent(
    engine: SearchEngine,
    stringify: Callable[[Any], str] = str,
    auto_rounds: int = 0,
    threshold: float = 0.85,
) -> None:
    """
    Interactive question loop over an engine.

    auto_rounds > 0 runs auto_search, letting the model refine each question
    up to that many times.
    """
    logging.basicConfig(level=settings.log_level())

    print("\n" + INTRO + "\n")
    if engine.call_llm is None:
        print("⚠️  No model configured. Set OPENAI_API_KEY (and WISHFUL_MODEL) in .env.\n")

    # One event loop for the whole session: adapter clients keep their
    # pooled connections bound to the loop that opened them.
    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                q = input("Ask a question: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\n👋 Goodbye!\n")
                break

            if not q:
                continue

            if q.lower() in ("exit", "quit", "bye", "q"):
                print("\n👋 Goodbye!\n")
                break

            if q.lower() == "reset":
                engine.reset_session()
                print("Session reset.\n")
                continue

            if q.lower() == "help":
                print(HELP + "\n")
                continue

            try:
                if auto_rounds > 0:
                    results = loop.run_until_complete(engine.auto_search(q, stringify, auto_rounds, threshold))
                else:
                    results = loop.run_until_complete(engine.search(q))
            except WishfulSearchError as e:
                print(f"\n❌ {e}\n")
                continue

            _print_results(results, stringify)
            if engine.history:
                print(f"  ({engine.query_prefix} {engine.history[-1].partial_query})\n")
    finally:
        loop.close()
