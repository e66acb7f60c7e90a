from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_DB_PATH = ":memory:"
DEFAULT_LOG_LEVEL = "WARNING"


def openai_api_key() -> Optional[str]:
    return os.getenv("OPENAI_API_KEY")


def model_name() -> str:
    return os.getenv("WISHFUL_MODEL", DEFAULT_MODEL)


def base_url() -> Optional[str]:
    # OpenAI-compatible endpoint, e.g. a local Ollama or vLLM server
    return os.getenv("WISHFUL_BASE_URL") or None


def db_path() -> str:
    """SQLite database location. In-memory unless WISHFUL_DB_PATH is set."""
    env = os.getenv("WISHFUL_DB_PATH")
    if env:
        return str(Path(env).expanduser().resolve())
    return DEFAULT_DB_PATH


def log_level() -> str:
    return os.getenv("WISHFUL_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
