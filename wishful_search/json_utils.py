"""
JSON handling for model output.

Models asked for JSON still wrap it in prose or code fences, or return
something JSON-shaped that doesn't parse. Parsing goes:
brace extraction -> strict json.loads -> one repair round with the model.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .errors import AnalysisUnparseable
from .models import Analysis, LLMCallFunc
from .prompts import generate_json_fix_messages

logger = logging.getLogger(__name__)

BRACES_RE = re.compile(r"\{[\s\S]*\}")


def extract_braces(text: str) -> str:
    """The `{...}` span of text (first `{` to last `}`), or text unchanged when there is none."""
    match = BRACES_RE.search(text or "")
    return match.group(0) if match else (text or "")


async def fix_json(call_llm: LLMCallFunc, json_str: str) -> Optional[Any]:
    """
    Parse json_str, asking the model to repair it once if that fails.

    Returns None when the model gives no answer. Raises json.JSONDecodeError
    when the repaired text still doesn't parse.
    """
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.debug("Invalid JSON from model (%s), asking for a fix.", e)
        messages = generate_json_fix_messages(str(e), json_str)

    fixed = await call_llm(messages)
    if not fixed:
        return None
    return json.loads(extract_braces(fixed))


def normalize_analysis(data: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap scalars where the analysis shape expects lists."""
    out = dict(data)
    for key in ("desires", "thoughts", "betterFilters", "better_filters"):
        if key in out and not isinstance(out[key], list):
            out[key] = [] if out[key] is None else [out[key]]
    return out


async def try_parse_analysis(call_llm: LLMCallFunc, raw: Optional[str]) -> Analysis:
    """
    Turn a model critique into an Analysis.

    Raises AnalysisUnparseable when nothing usable comes out, including after
    the repair round.
    """
    if not raw:
        raise AnalysisUnparseable("No analysis returned by the model.")

    candidate = extract_braces(raw)
    try:
        data = await fix_json(call_llm, candidate)
    except json.JSONDecodeError as e:
        raise AnalysisUnparseable(f"Could not repair analysis JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisUnparseable(f"Analysis is not a JSON object: {candidate[:200]}")

    try:
        return Analysis.model_validate(normalize_analysis(data))
    except ValidationError as e:
        raise AnalysisUnparseable(f"Analysis has the wrong shape: {e}") from e


def dumps_pretty(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)
