"""
Prompt templates and message assembly.

Everything the model sees is built here: search/analytics query prompts,
the reflection turn after a failed query, the auto-search analysis prompt
and the JSON repair prompt. Assembly is deterministic; the only
time-dependent input (today's date) is passed in.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from .dates import today_str
from .models import AutoSearchHistoryElement, Message, QQTurn

SearchType = Literal["search", "analytics"]

HISTORY_RESET_COMMAND = "Ignore all previous filters. "

FACTS = [
    ("Do not use LIMIT, DISTINCT, ARRAY_LENGTH, MAX, MIN or AVG if possible.", "search"),
    ("Dont LIMIT queries.", "analytics"),
    ("Dont modify original column names from the tables if possible.", "analytics"),
    (
        "When creating new columns, always use one of the following prefixes:\n"
        "- for monetary fields, prefix currencyXXX to the column name, where XXX is the currency code, e.g. currencyUSD\n"
        "- otherwise prefix str, int, float, date, bool, enum, or json to the column name, e.g. intAverage",
        "analytics",
    ),
    ("Try and find the right rows that can help the answer.", "search"),
    ("Prefer `strftime` to format dates better.", "all"),
    (
        "**Deliberately go through the question and database schema word by word** "
        "to appropriately answer the question.",
        "all",
    ),
    ("Prefer sorting the right values to the top instead of filters if possible.", "all"),
    ("Use LIKE instead of equality to compare strings.", "all"),
    ("Try to continue the partial query if one is provided.", "all"),
]

SEARCH_TASK = (
    "Provide an appropriate SQLite Query to return the keys to answer the user's question. "
    "Only filter by the things the user asked for, and only return ids or keys."
)
ANALYTICS_TASK = (
    "Provide an appropriate SQLite query to return the answer to the user's question. "
    "Add any fields that would be helpful to explain the result but not too many."
)

ANALYSIS_TYPESPEC = """{
  "suitabilityDesc": string, // How well the top result answers USER_QUESTION, and why
  "suitability": number, // 0 (useless) to 1 (perfect)
  "desires": string[], // What the user actually wants, stated and implied
  "thoughts": string[], // Patterns across the attempts and how to do better
  "betterFilters": string[], // Filters that would get closer to what the user wants
  "betterQuestion": string // A rewritten question that should return better results
}"""

JSON_ONLY_SYSTEM = "You can only return valid JSON."

JSON_FIX_EXAMPLES = [
    {
        "invalid": (
            "type Analysis = {\n"
            '  suitabilityDesc: "The top result included a layover which does not match a direct flight.",\n'
            "  suitability: 0.3,\n"
            '  desires: ["A non-stop flight", "No layovers"],\n'
            "}"
        ),
        "error": "Expecting value: line 1 column 1 (char 0)",
        "fixed": (
            "{\n"
            '  "suitabilityDesc": "The top result included a layover which does not match a direct flight.",\n'
            '  "suitability": 0.3,\n'
            '  "desires": ["A non-stop flight", "No layovers"]\n'
            "}"
        ),
    },
    {
        "invalid": "{abc:2}",
        "error": "Expecting property name enclosed in double quotes: line 1 column 2 (char 1)",
        "fixed": '{"abc":2}',
    },
]


# ----------------------------
# Search / analytics
# ----------------------------
def facts_for(search_type: Optional[SearchType]) -> List[str]:
    return [text for text, kind in FACTS if not search_type or kind in ("all", search_type)]


def system_prompt(ddl: str, date_str: Optional[str] = None, search_type: Optional[SearchType] = None) -> str:
    rules = "\n".join(f"{i}. {fact}" for i, fact in enumerate(facts_for(search_type), 1))
    date_line = f"Today's date: {date_str}." if date_str else ""
    task = SEARCH_TASK if search_type == "search" else ANALYTICS_TASK
    return (
        "You are a SQLite SQL generator that helps users answer questions from the tables provided. "
        "Here are the table definitions:\n\n"
        f"DATABASE_DDL:\n```sql\n{ddl}\n```\n\n"
        f"{date_line}\n\n"
        f'RULES:\n"""\n{rules}\n"""\n\n'
        f"{task}"
    )


def user_prompt(question: str, first_question: bool) -> str:
    return f"{HISTORY_RESET_COMMAND if first_question else ''}{question}"


def assistant_prompt(partial_query: str, query_prefix: str) -> str:
    return f"{query_prefix} {partial_query}"


def reflection_prompt(error: str, query_prefix: str) -> str:
    return (
        "The query ran into the following issue:\n"
        f'"""\n{error}\n"""\n\n'
        "Fix and provide only the new query. SQL only, in code blocks. "
        f"The query must start with {query_prefix}."
    )


def generate_llm_messages(
    ddl: str,
    question: str,
    query_prefix: str,
    history: Optional[List[QQTurn]],
    search_type: SearchType,
    few_shot: Optional[List[QQTurn]] = None,
    enable_todays_date: bool = False,
    date_str: Optional[str] = None,
) -> List[Message]:
    """
    Build the ordered message list for a query-generation call.

    Order: system, few-shot turns, history turns, current question, and a
    trailing assistant message with the bare prefix when no few-shot turns
    set up the assistant pattern. Only the first user message of the whole
    sequence carries HISTORY_RESET_COMMAND.
    """
    if enable_todays_date and date_str is None:
        date_str = today_str()
    messages: List[Message] = [
        {"role": "system", "content": system_prompt(ddl, date_str if enable_todays_date else None, search_type)}
    ]

    first = True
    for turn in list(few_shot or []) + list(history or []):
        messages.append({"role": "user", "content": user_prompt(turn.question, first)})
        messages.append({"role": "assistant", "content": assistant_prompt(turn.partial_query, query_prefix)})
        first = False

    messages.append({"role": "user", "content": user_prompt(question, first)})

    if not few_shot and query_prefix:
        messages.append({"role": "assistant", "content": query_prefix})

    return messages


def generate_reflection_messages(
    previous: List[Message], query_prefix: str, partial_query: str, error: str
) -> List[Message]:
    return [
        *previous,
        {"role": "assistant", "content": assistant_prompt(partial_query, query_prefix)},
        {"role": "user", "content": reflection_prompt(error, query_prefix)},
    ]


# ----------------------------
# Auto-search analysis
# ----------------------------
def _attempt_line(idx: int, element: AutoSearchHistoryElement) -> str:
    line = (
        f' - {idx}: "{element.question}" generated "{element.query}" which returned '
        f'{element.result_count} results with top prettified result "{element.top_result_str}".'
    )
    if element.suitability_desc:
        line += f" Suitability was {element.suitability_score} ({element.suitability_desc})."
    return line


def auto_search_system_prompt(ddl: str) -> str:
    return f"{JSON_ONLY_SYSTEM}\n\nInformation is stored in tables with this schema:\n```\n{ddl}\n```"


def auto_search_user_prompt(user_question: str, history: List[AutoSearchHistoryElement]) -> str:
    attempts = "\n".join(_attempt_line(i, h) for i, h in enumerate(history, 1))
    return (
        f"The user had this USER_QUESTION: {user_question}\n\n"
        "We tried the following modified questions, and got these queries and results:\n\n"
        f"{attempts}\n\n"
        "We can improve the results by looking for ways to increase suitability. "
        "Check for patterns (like consistent no results, same result over again, etc). "
        "Return your analysis following this typespec, and be exhaustive and thorough.\n\n"
        f"```typescript\n{ANALYSIS_TYPESPEC}\n```\n\n"
        "Valid JSON:"
    )


def generate_auto_search_messages(
    ddl: str, user_question: str, history: List[AutoSearchHistoryElement]
) -> List[Message]:
    return [
        {"role": "system", "content": auto_search_system_prompt(ddl)},
        {"role": "user", "content": auto_search_user_prompt(user_question, history)},
    ]


# ----------------------------
# JSON repair
# ----------------------------
def json_fix_user_prompt(error: str, invalid_json: str) -> str:
    return (
        f"Error: {error}\n\n"
        "Fix this invalid JSON and return perfectly valid JSON without changing any content:\n\n"
        f"```json\n{invalid_json}\n```"
    )


def generate_json_fix_messages(error: str, invalid_json: str) -> List[Message]:
    messages: List[Message] = [{"role": "system", "content": JSON_ONLY_SYSTEM}]
    for example in JSON_FIX_EXAMPLES:
        messages.append({"role": "user", "content": json_fix_user_prompt(example["error"], example["invalid"])})
        messages.append({"role": "assistant", "content": example["fixed"]})
    messages.append({"role": "user", "content": json_fix_user_prompt(error, invalid_json)})
    return messages
