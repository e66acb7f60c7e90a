"""
Stateless query generation.

BaseEngine knows the schema and how to talk to the model: build a prompt,
get a partial query back, and reflect once on a query the database rejected.
It keeps no history and owns no data; SearchEngine and AnalyticsEngine add
those.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .ddl import generate_sql_ddl
from .errors import ModelUnavailable
from .models import LLMCallFunc, LLMQuery, Message, QQTurn, Table
from .prompts import SearchType, generate_llm_messages, generate_reflection_messages
from .sql.extract import extract_query

logger = logging.getLogger(__name__)


BASE_QUERY_PREFIX = "SELECT "


class BaseEngine:
    search_type: SearchType = "analytics"

    def __init__(
        self,
        tables: List[Table],
        call_llm: Optional[LLMCallFunc],
        enable_todays_date: bool = False,
        query_prefix: str = BASE_QUERY_PREFIX,
    ):
        self.tables = tables
        self.call_llm = call_llm
        self.enable_todays_date = enable_todays_date
        self.query_prefix = query_prefix

    def llm_ddl(self) -> str:
        return generate_sql_ddl(self.tables, True)

    def generate_prompt(
        self,
        question: str,
        history: Optional[List[QQTurn]] = None,
        few_shot: Optional[List[QQTurn]] = None,
        query_prefix: Optional[str] = None,
        date_str: Optional[str] = None,
    ) -> List[Message]:
        return generate_llm_messages(
            self.llm_ddl(),
            question,
            query_prefix or self.query_prefix,
            history or [],
            self.search_type,
            few_shot,
            self.enable_todays_date,
            date_str,
        )

    def _resolve_call(self, call_llm: Optional[LLMCallFunc]) -> LLMCallFunc:
        call = call_llm or self.call_llm
        if call is None:
            raise ModelUnavailable(
                "No LLM call function provided. Use generate_search_messages "
                "if you intend to make your own calls."
            )
        return call

    async def generate_query(
        self,
        messages: List[Message],
        query_prefix: Optional[str] = None,
        call_llm: Optional[LLMCallFunc] = None,
    ) -> LLMQuery:
        """Call the model and clean its answer into a partial query."""
        prefix = query_prefix or self.query_prefix
        raw = await self._resolve_call(call_llm)(messages, prefix)
        if not raw:
            raise ModelUnavailable("Could not generate query from question with LLM.")
        return LLMQuery(query_prefix=prefix, partial_query=extract_query(raw, prefix))

    def get_reflection_prompt(self, messages: List[Message], query: LLMQuery, error: str) -> List[Message]:
        return generate_reflection_messages(messages, query.query_prefix, query.partial_query, error)

    async def generate_reflected_query(
        self,
        messages: List[Message],
        query: LLMQuery,
        error: str,
        call_llm: Optional[LLMCallFunc] = None,
    ) -> LLMQuery:
        """
        One corrective round: show the model its failed query and the error,
        and take whatever it answers. Never loops.
        """
        logger.info("Reflecting on failed query: %s", error)
        reflection = self.get_reflection_prompt(messages, query, error)
        raw = await self._resolve_call(call_llm)(reflection, query.query_prefix)
        if not raw:
            raise ModelUnavailable("Could not get response from LLM for reflection.")
        return LLMQuery(
            query_prefix=query.query_prefix,
            partial_query=extract_query(raw, query.query_prefix),
        )
