"""
Dynamic enums: summaries of live column contents for the model.

After every insert batch each column with dynamic_enum_settings gets a fresh
dynamic_enum_data computed over the whole table:
- EXHAUSTIVE: distinct values (optionally the top K)
- MIN_MAX: numeric or date range plus the values that don't parse
- EXHAUSTIVE_CHAR_LIMITED: distinct values until a character budget runs out
"""
from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Tuple

from .dates import parse_date_value, to_iso
from .models import (
    CharLimitedEnumSettings,
    EnumData,
    EnumSettings,
    ExamplesEnumData,
    ExhaustiveEnumSettings,
    MinMaxEnumData,
    MinMaxEnumSettings,
    Table,
)

logger = logging.getLogger(__name__)

NULL_MARKER = "NULL"
FALLBACK_CHAR_LIMIT = 200

DistinctValuesFunc = Callable[[str, str, bool], List[str]]


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def _parse_number(value: str) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def summarize_exhaustive(settings: ExhaustiveEnumSettings, values: List[str]) -> ExamplesEnumData:
    examples = values[: settings.top_k] if settings.top_k else list(values)
    return ExamplesEnumData(examples=examples)


def summarize_number_range(values: List[str]) -> Optional[MinMaxEnumData]:
    numbers, exceptions = [], []
    for value in values:
        number = _parse_number(value)
        if number is None:
            exceptions.append(value)
        else:
            numbers.append(number)
    if not numbers:
        return None
    return MinMaxEnumData(
        min=format_number(min(numbers)),
        max=format_number(max(numbers)),
        exceptions=exceptions,
    )


def summarize_date_range(values: List[str]) -> Optional[MinMaxEnumData]:
    parsed, exceptions = [], []
    for value in values:
        dt = parse_date_value(value)
        if dt is None:
            exceptions.append(value)
        else:
            parsed.append(dt)
    if not parsed:
        return None
    return MinMaxEnumData(
        min=to_iso(min(parsed)),
        max=to_iso(max(parsed)),
        exceptions=exceptions,
    )


def summarize_char_limited(settings: CharLimitedEnumSettings, values: List[str]) -> ExamplesEnumData:
    examples: List[str] = []
    char_count = 0
    for value in values:
        if value == NULL_MARKER:
            continue
        if char_count + len(value) > settings.char_limit:
            break
        examples.append(value)
        char_count += len(value)
    # NULL is always worth telling the model about, budget or not
    if NULL_MARKER in values:
        examples.append(NULL_MARKER)
    return ExamplesEnumData(examples=examples)


def summarize_column(
    settings: EnumSettings, values: List[str], label: str = "column"
) -> Tuple[Optional[EnumData], EnumSettings]:
    """
    Summarize one column's distinct values.

    Returns the enum data and the settings that produced it. Settings only
    change when a DATE range finds no parseable dates: the column is demoted
    to a character-limited example list.
    """
    if isinstance(settings, ExhaustiveEnumSettings):
        return summarize_exhaustive(settings, values), settings

    if isinstance(settings, MinMaxEnumSettings) and settings.format == "NUMBER":
        data = summarize_number_range(values)
        if data is None and values:
            logger.warning("No numeric values found for %s, skipping range.", label)
        return data, settings

    if isinstance(settings, MinMaxEnumSettings) and settings.format == "DATE":
        data = summarize_date_range(values)
        if data is not None or not values:
            return data, settings
        logger.warning(
            "Could not parse dates for %s, falling back to EXHAUSTIVE_CHAR_LIMITED (%d chars).",
            label,
            FALLBACK_CHAR_LIMIT,
        )
        demoted = CharLimitedEnumSettings(char_limit=FALLBACK_CHAR_LIMIT)
        return summarize_char_limited(demoted, values), demoted

    return summarize_char_limited(settings, values), settings


def compute_enums(
    tables: List[Table], distinct_values: DistinctValuesFunc, sort_by_frequency: bool = False
) -> None:
    """Recompute dynamic_enum_data for every column that asks for it."""
    for table in tables:
        for column in table.columns:
            if column.dynamic_enum_settings is None:
                continue
            values = distinct_values(table.name, column.name, sort_by_frequency)
            data, settings = summarize_column(
                column.dynamic_enum_settings, values, label=f"{table.name}.{column.name}"
            )
            column.dynamic_enum_settings = settings
            column.dynamic_enum_data = data
