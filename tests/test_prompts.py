"""
Tests for prompt assembly.
"""
from wishful_search.models import AutoSearchHistoryElement, QQTurn
from wishful_search.prompts import (
    ANALYSIS_TYPESPEC,
    HISTORY_RESET_COMMAND,
    JSON_ONLY_SYSTEM,
    facts_for,
    generate_auto_search_messages,
    generate_json_fix_messages,
    generate_llm_messages,
    generate_reflection_messages,
)

DDL = "CREATE TABLE IF NOT EXISTS Movies (\nid TEXT\n);"
PREFIX = "SELECT id FROM Movies"


def turn(q, p):
    return QQTurn(question=q, partial_query=p)


def user_messages(messages):
    return [m["content"] for m in messages if m["role"] == "user"]


class TestSearchMessages:
    """Test query generation prompts."""

    def test_single_question(self):
        """Test a lone question gets the reset marker and the prefix anchor."""
        messages = generate_llm_messages(DDL, "dramas", PREFIX, [], "search")
        assert [m["role"] for m in messages] == ["system", "user", "assistant"]
        assert messages[1]["content"] == HISTORY_RESET_COMMAND + "dramas"
        assert messages[2]["content"] == PREFIX
        assert DDL in messages[0]["content"]

    def test_marker_only_on_first_user_message(self):
        """Test few-shot and history turns don't repeat the marker."""
        messages = generate_llm_messages(
            DDL, "newest first", PREFIX,
            [turn("dramas", "WHERE genre = 'Drama'")],
            "search",
            few_shot=[turn("comedies", "WHERE genre = 'Comedy'")],
        )
        users = user_messages(messages)
        assert users == [HISTORY_RESET_COMMAND + "comedies", "dramas", "newest first"]
        assert sum(HISTORY_RESET_COMMAND in u for u in users) == 1

    def test_turn_order(self):
        """Test few-shot turns come before history turns."""
        messages = generate_llm_messages(
            DDL, "q3", PREFIX, [turn("q2", "WHERE b")], "search", few_shot=[turn("q1", "WHERE a")]
        )
        assistants = [m["content"] for m in messages if m["role"] == "assistant"]
        assert assistants == [PREFIX + " WHERE a", PREFIX + " WHERE b"]
        assert messages[-1] == {"role": "user", "content": "q3"}

    def test_anchor_needs_prefix(self):
        """Test no anchor is added for an empty prefix."""
        messages = generate_llm_messages(DDL, "q", "", [], "search")
        assert messages[-1]["role"] == "user"

    def test_deterministic(self):
        """Test the same inputs give the same messages."""
        args = (DDL, "q", PREFIX, [turn("a", "WHERE a")], "search")
        kwargs = {"enable_todays_date": True, "date_str": "2024-03-01"}
        assert generate_llm_messages(*args, **kwargs) == generate_llm_messages(*args, **kwargs)

    def test_date_only_when_enabled(self):
        """Test today's date appears only when enabled."""
        on = generate_llm_messages(DDL, "q", PREFIX, [], "search", enable_todays_date=True, date_str="2024-03-01")
        off = generate_llm_messages(DDL, "q", PREFIX, [], "search", date_str="2024-03-01")
        assert "2024-03-01" in on[0]["content"]
        assert "2024-03-01" not in off[0]["content"]

    def test_facts_by_search_type(self):
        """Test rules are filtered by mode."""
        search, analytics = facts_for("search"), facts_for("analytics")
        assert "Try and find the right rows that can help the answer." in search
        assert "Try and find the right rows that can help the answer." not in analytics
        assert not any("currencyXXX" in f for f in search)
        assert any("currencyXXX" in f for f in analytics)
        assert "Use LIKE instead of equality to compare strings." in search
        assert "Use LIKE instead of equality to compare strings." in analytics


class TestReflectionMessages:
    """Test the corrective turn."""

    def test_appends_failed_turn_and_error(self):
        """Test the failed query and error follow the original messages."""
        original = generate_llm_messages(DDL, "q", PREFIX, [], "search")
        messages = generate_reflection_messages(original, PREFIX, "WHERE nope", "no such column: nope")
        assert messages[:len(original)] == original
        assert messages[-2] == {"role": "assistant", "content": PREFIX + " WHERE nope"}
        assert "no such column: nope" in messages[-1]["content"]
        assert messages[-1]["content"].endswith(f"must start with {PREFIX}.")


class TestAnalysisMessages:
    """Test the auto-search critique prompt."""

    def test_lists_attempts(self):
        """Test each attempt and known scores are shown."""
        history = [
            AutoSearchHistoryElement(
                question="dramas", query=PREFIX + " WHERE a", result_count=2,
                top_result_str="Cast Away", suitability_score=0.4, suitability_desc="too old",
            ),
            AutoSearchHistoryElement(question="new dramas", query=PREFIX + " WHERE b", result_count=0),
        ]
        messages = generate_auto_search_messages(DDL, "a good drama", history)
        assert messages[0]["content"].startswith(JSON_ONLY_SYSTEM)
        user = messages[1]["content"]
        assert "USER_QUESTION: a good drama" in user
        assert ' - 1: "dramas"' in user
        assert "Suitability was 0.4 (too old)" in user
        assert ' - 2: "new dramas"' in user and "returned 0 results" in user
        assert ANALYSIS_TYPESPEC in user


class TestJsonFixMessages:
    """Test the JSON repair prompt."""

    def test_examples_then_failure(self):
        """Test two worked examples precede the failing text."""
        messages = generate_json_fix_messages("Expecting value", "{bad}")
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user", "assistant", "user"]
        assert messages[0]["content"] == JSON_ONLY_SYSTEM
        assert "{bad}" in messages[-1]["content"]
        assert "Expecting value" in messages[-1]["content"]
