"""
Data models for wishful-search.

Structured schema definitions, conversation turns and the analysis shape the
model returns during auto-search.
"""
from __future__ import annotations

from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# {"role": "system" | "user" | "assistant", "content": str}
Message = Dict[str, str]
# call_llm(messages, query_prefix=None) -> text, or None when the model gave nothing
LLMCallFunc = Callable[..., Awaitable[Optional[str]]]


# ----------------------------
# Database
# ----------------------------
class DBColumn(BaseModel):
    """A table and column pair, used for the primary key of the database."""
    table: str
    column: str


class ForeignKey(BaseModel):
    """One-to-many link from a child column to a parent table column."""
    table: str
    column: str


class InsertionError(BaseModel):
    """A row that failed to insert: index of the element in the batch and the error."""
    index: int
    error: str


# ----------------------------
# Dynamic enums
# ----------------------------
class ExhaustiveEnumSettings(BaseModel):
    type: Literal["EXHAUSTIVE"] = "EXHAUSTIVE"
    top_k: Optional[int] = None


class MinMaxEnumSettings(BaseModel):
    type: Literal["MIN_MAX"] = "MIN_MAX"
    format: Literal["DATE", "NUMBER"]


class CharLimitedEnumSettings(BaseModel):
    type: Literal["EXHAUSTIVE_CHAR_LIMITED"] = "EXHAUSTIVE_CHAR_LIMITED"
    char_limit: int


EnumSettings = Annotated[
    Union[ExhaustiveEnumSettings, MinMaxEnumSettings, CharLimitedEnumSettings],
    Field(discriminator="type"),
]


class ExamplesEnumData(BaseModel):
    type: Literal["EXAMPLES"] = "EXAMPLES"
    examples: List[str] = Field(default_factory=list)


class MinMaxEnumData(BaseModel):
    type: Literal["MIN_MAX"] = "MIN_MAX"
    min: str
    max: str
    exceptions: List[str] = Field(default_factory=list)


EnumData = Annotated[
    Union[ExamplesEnumData, MinMaxEnumData],
    Field(discriminator="type"),
]


# ----------------------------
# Structured DDL
# ----------------------------
class Column(BaseModel):
    """
    One column of a structured table definition.

    dynamic_enum_data is written by the enum summarizer after every insert
    batch; callers only declare dynamic_enum_settings.
    """
    name: str
    column_spec: str
    description: str = ""
    static_examples: List[str] = Field(default_factory=list)
    foreign_key: Optional[ForeignKey] = None
    dynamic_enum_settings: Optional[EnumSettings] = None
    dynamic_enum_data: Optional[EnumData] = None
    visible_to_llm: bool = True
    stats_column_type: Optional[Dict[str, str]] = None


class Table(BaseModel):
    name: str
    columns: List[Column]


# ----------------------------
# Conversation
# ----------------------------
class QQTurn(BaseModel):
    """Question-query turn. partial_query excludes the fixed query prefix."""
    question: str
    partial_query: str


class LLMConfig(BaseModel):
    enable_todays_date: bool = False
    few_shot_learning: List[QQTurn] = Field(default_factory=list)


class ConversationState(BaseModel):
    """History plus the question that is still waiting for its query."""
    history: List[QQTurn] = Field(default_factory=list)
    latest_incomplete_question: Optional[str] = None


class LLMQuery(BaseModel):
    query_prefix: str
    partial_query: str

    @property
    def full_query(self) -> str:
        return f"{self.query_prefix} {self.partial_query}"


class LLMAdapter(BaseModel):
    """What an adapter factory hands back: a default config and the call function."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    llm_config: LLMConfig
    call_llm: Callable[..., Any]


# ----------------------------
# Auto-search
# ----------------------------
class AutoSearchHistoryElement(BaseModel):
    question: str
    query: str
    result_count: int
    top_result_str: str = ""
    suitability_score: Optional[float] = None
    suitability_desc: Optional[str] = None


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


class Analysis(BaseModel):
    """Model critique of one auto-search round. Built fresh every round."""
    model_config = ConfigDict(populate_by_name=True)

    suitability_desc: str = Field(default="", alias="suitabilityDesc")
    suitability: float = 0.0
    desires: List[str] = Field(default_factory=list)
    thoughts: List[str] = Field(default_factory=list)
    better_filters: List[str] = Field(default_factory=list, alias="betterFilters")
    better_question: str = Field(default="", alias="betterQuestion")

    @field_validator("desires", "thoughts", "better_filters", mode="before")
    @classmethod
    def _wrap_scalars(cls, value: Any) -> List[str]:
        return _as_list(value)

    @field_validator("suitability", mode="after")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return min(1.0, max(0.0, value))

    @field_validator("suitability_desc", "better_question", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value
