"""
SearchEngine: store objects, ask questions about them in plain text.

With the right config it can:
- store your objects for retrieval
- search them with plain-text questions (the model writes the SQL)
- keep a conversation history so follow-up questions refine earlier ones
- keep the dynamic enums current so the model knows what is in the tables
- critique its own results and retry with a better question (auto_search)
- build few-shot examples with a stronger model (auto_generate_few_shot)

One engine is one conversation. History and the pending question are
mutated in place, so calls on the same engine must not overlap.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from pydantic import BaseModel

from .base_engine import BaseEngine
from .ddl import generate_sql_ddl, validate_structured_ddl
from .enums import compute_enums
from .errors import (
    AnalysisUnparseable,
    NoObjectRetentionConfigured,
    QueryExecutionFailed,
    SearchInProgress,
    WishfulSearchError,
)
from .json_utils import dumps_pretty, try_parse_analysis
from .models import (
    Analysis,
    AutoSearchHistoryElement,
    ConversationState,
    DBColumn,
    InsertionError,
    LLMCallFunc,
    LLMConfig,
    LLMQuery,
    Message,
    QQTurn,
    Table,
)
from .prompts import generate_auto_search_messages, generate_llm_messages
from .sql.builder import build_query_prefix
from .sql.executor import ObjectToRows, SearchableDatabase

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FewShotQuestion(BaseModel):
    question: str
    clear_history: bool = False


def _as_few_shot_question(item: Union[str, Dict[str, Any], FewShotQuestion]) -> FewShotQuestion:
    if isinstance(item, FewShotQuestion):
        return item
    if isinstance(item, str):
        return FewShotQuestion(question=item)
    return FewShotQuestion.model_validate(item)


class SearchEngine(BaseEngine, Generic[T]):
    search_type = "search"

    def __init__(
        self,
        db: SearchableDatabase,
        name: str,
        tables: List[Table],
        primary_key: DBColumn,
        llm_config: LLMConfig,
        call_llm: Optional[LLMCallFunc],
        get_key_from_object: Optional[Callable[[T], Any]] = None,
        save_history: bool = True,
        enable_dynamic_enums: bool = True,
        sort_enums_by_frequency: bool = False,
    ):
        super().__init__(
            tables,
            call_llm,
            enable_todays_date=llm_config.enable_todays_date,
            query_prefix=build_query_prefix(primary_key.table, primary_key.column),
        )
        self.db = db
        self.name = name
        self.primary_key = primary_key
        self.llm_config = llm_config
        self.get_key_from_object = get_key_from_object
        self.save_history = save_history
        self.enable_dynamic_enums = enable_dynamic_enums
        self.sort_enums_by_frequency = sort_enums_by_frequency
        self.state = ConversationState()
        self.element_dict: Optional[Dict[str, T]] = {} if get_key_from_object else None

    @classmethod
    def create(
        cls,
        name: str,
        tables: List[Table],
        primary_key: DBColumn,
        object_to_rows: ObjectToRows,
        llm_config: LLMConfig,
        call_llm: Optional[LLMCallFunc],
        get_key_from_object: Optional[Callable[[T], Any]] = None,
        save_history: bool = True,
        enable_dynamic_enums: bool = True,
        sort_enums_by_frequency: bool = False,
        db_path: Optional[str] = None,
    ) -> "SearchEngine[T]":
        """
        Build an engine and its database.

        object_to_rows maps one object to a list of row lists, one per table
        in table order. get_key_from_object turns on object retention: search
        then returns full objects instead of keys (required for auto_search).
        """
        validate_structured_ddl(tables, primary_key)
        db = SearchableDatabase(
            generate_sql_ddl(tables, False), name, primary_key, object_to_rows, db_path
        )
        return cls(
            db,
            name,
            tables,
            primary_key,
            llm_config,
            call_llm,
            get_key_from_object,
            save_history,
            enable_dynamic_enums,
            sort_enums_by_frequency,
        )

    # ----------------------------
    # State
    # ----------------------------
    @property
    def history(self) -> List[QQTurn]:
        return self.state.history

    @history.setter
    def history(self, turns: List[QQTurn]) -> None:
        self.state.history = list(turns)

    def reset_session(self) -> None:
        self.state = ConversationState()

    def _log(self, verbose: bool, msg: str, *args: Any) -> None:
        logger.log(logging.INFO if verbose else logging.DEBUG, msg, *args)

    # ----------------------------
    # Data
    # ----------------------------
    def _compute_enums(self) -> None:
        if not self.enable_dynamic_enums:
            return
        compute_enums(self.tables, self.db.distinct_values, self.sort_enums_by_frequency)

    def insert(self, objects: Sequence[T], fail_fast: bool = False) -> List[InsertionError]:
        """
        Insert objects and refresh the dynamic enums.

        fail_fast: raise and roll back the whole batch if a single row fails.
        Otherwise returns the failures (object index and error).
        """
        errors = self.db.insert(objects, fail_fast)
        self._compute_enums()
        if self.get_key_from_object and self.element_dict is not None:
            for obj in objects:
                self.element_dict[str(self.get_key_from_object(obj))] = obj
        return errors

    def remove(self, keys: Optional[Sequence[str]] = None) -> None:
        """Remove objects by key. Without keys, wipe everything."""
        if self.element_dict is not None:
            if keys is None:
                self.element_dict = {}
            else:
                for key in keys:
                    self.element_dict.pop(str(key), None)
        if keys is None:
            self.db.reset()
        else:
            self.db.delete([str(k) for k in keys])
        self._compute_enums()

    # ----------------------------
    # Search
    # ----------------------------
    def generate_search_messages(self, question: str, date_str: Optional[str] = None) -> List[Message]:
        """
        Messages for the model to turn question into a partial query. Use this
        to make the model call yourself, then pass the result to
        search_with_partial_query.
        """
        if self.save_history:
            self.state.latest_incomplete_question = question
        return self._messages_for(question, self.state.history, date_str)

    def _messages_for(
        self, question: str, history: List[QQTurn], date_str: Optional[str] = None
    ) -> List[Message]:
        return generate_llm_messages(
            self.llm_ddl(),
            question,
            self.query_prefix,
            history,
            self.search_type,
            self.llm_config.few_shot_learning,
            self.llm_config.enable_todays_date,
            date_str,
        )

    def _to_results(self, keys: List[str]) -> Union[List[str], List[T]]:
        if self.element_dict is None:
            return keys
        return [self.element_dict[key] for key in keys if key in self.element_dict]

    def _run_partial_query(self, partial_query: str) -> Union[List[str], List[T]]:
        full_query = f"{self.query_prefix} {partial_query}"
        try:
            keys = self.db.raw_query(full_query)
        except (sqlite3.Error, ValueError) as e:
            raise QueryExecutionFailed(full_query, str(e)) from e
        return self._to_results(keys)

    def _record_turn(self, partial_query: str) -> None:
        if self.save_history and self.state.latest_incomplete_question:
            self.state.history.append(
                QQTurn(question=self.state.latest_incomplete_question, partial_query=partial_query)
            )
        self.state.latest_incomplete_question = None

    def search_with_partial_query(self, partial_query: str) -> Union[List[str], List[T]]:
        """
        Run a partial query (everything after the query prefix).

        Returns objects when object retention is on, keys otherwise. The
        pending question is recorded in history only if the query runs.
        """
        try:
            results = self._run_partial_query(partial_query)
        except QueryExecutionFailed:
            self.state.latest_incomplete_question = None
            raise
        self._record_turn(partial_query)
        return results

    async def get_query_from_llm(self, messages: List[Message], call_llm: Optional[LLMCallFunc] = None) -> str:
        query = await self.generate_query(messages, call_llm=call_llm)
        return query.partial_query

    async def _execute_with_reflection(
        self, messages: List[Message], verbose: bool = False, reflect_and_fix: bool = True
    ) -> Tuple[LLMQuery, Union[List[str], List[T]]]:
        query = await self.generate_query(messages)
        self._log(verbose, "Query: %s", query.full_query)
        try:
            return query, self._run_partial_query(query.partial_query)
        except QueryExecutionFailed as e:
            if not reflect_and_fix:
                raise
            self._log(verbose, "Query failed, reflecting: %s", e.error)
            query = await self.generate_reflected_query(messages, query, e.error)
            self._log(verbose, "Reflected query: %s", query.full_query)
            return query, self._run_partial_query(query.partial_query)

    async def search(
        self, question: str, verbose: bool = False, reflect_and_fix: bool = True
    ) -> Union[List[str], List[T]]:
        """
        Ask a question: prompt, model call, query, results.

        A query the database rejects gets one reflection round when
        reflect_and_fix is set; a second failure is raised.
        """
        messages = self.generate_search_messages(question)
        try:
            query, results = await self._execute_with_reflection(messages, verbose, reflect_and_fix)
            self._record_turn(query.partial_query)
        finally:
            self.state.latest_incomplete_question = None
        self._log(verbose, "Got %d results for %r.", len(results), question)
        return results

    # ----------------------------
    # Auto-search
    # ----------------------------
    async def analyze_results(
        self,
        user_question: str,
        history: List[AutoSearchHistoryElement],
        call_llm: Optional[LLMCallFunc] = None,
    ) -> Analysis:
        call = self._resolve_call(call_llm)
        messages = generate_auto_search_messages(self.llm_ddl(), user_question, history)
        raw = await call(messages)
        return await try_parse_analysis(call, raw)

    async def auto_search(
        self,
        question: str,
        stringify: Callable[[T], str],
        max_rounds: int,
        threshold: float,
        call_llm_override: Optional[LLMCallFunc] = None,
        verbose: bool = False,
    ) -> List[T]:
        """
        Search, let the model grade the results against the question, and
        search again with its better question until the grade reaches
        threshold or max_rounds extra rounds are spent.

        At most max_rounds + 1 searches run. The analysis is always anchored
        to the original question. If a later round finds nothing (or fails),
        the deepest earlier round with results is returned instead.

        call_llm_override is used for the analysis calls.
        """
        if self.element_dict is None:
            raise NoObjectRetentionConfigured(
                "auto_search needs full objects. Create the engine with get_key_from_object."
            )
        analysis_call = self._resolve_call(call_llm_override)
        start_history = list(self.state.history)

        log: List[AutoSearchHistoryElement] = []
        rounds: List[Tuple[str, LLMQuery, List[T]]] = []
        current_question = question
        rounds_left = max_rounds

        while True:
            self._log(verbose, "Auto-search round %d: %s", len(rounds) + 1, current_question)
            messages = self._messages_for(current_question, start_history)
            try:
                query, results = await self._execute_with_reflection(messages, verbose)
            except WishfulSearchError as e:
                if not rounds:
                    raise
                logger.warning("Auto-search round %d failed, keeping earlier results: %s", len(rounds) + 1, e)
                break
            rounds.append((current_question, query, results))

            if rounds_left <= 0:
                break

            element = AutoSearchHistoryElement(
                question=current_question,
                query=query.full_query,
                result_count=len(results),
                top_result_str=stringify(results[0]) if results else "",
            )
            log.append(element)

            try:
                analysis = await self.analyze_results(question, log, analysis_call)
            except AnalysisUnparseable as e:
                logger.warning("Could not analyze results, returning current round: %s", e)
                break

            element.suitability_score = analysis.suitability
            element.suitability_desc = analysis.suitability_desc
            self._log(
                verbose, "Suitability %.2f (%s)", analysis.suitability, analysis.suitability_desc
            )

            if analysis.suitability >= threshold:
                break
            if not analysis.better_question.strip():
                logger.warning("Analysis gave no better question, stopping at round %d.", len(rounds))
                break

            current_question = analysis.better_question
            rounds_left -= 1

        chosen = next((r for r in reversed(rounds) if r[2]), rounds[-1])
        if self.save_history:
            self.state.history.append(QQTurn(question=question, partial_query=chosen[1].partial_query))
        self._log(verbose, "Auto-search done after %d rounds, %d results.", len(rounds), len(chosen[2]))
        return chosen[2]

    # ----------------------------
    # Few-shot
    # ----------------------------
    async def auto_generate_few_shot(
        self,
        stronger_call_llm: LLMCallFunc,
        questions: Sequence[Union[str, Dict[str, Any], FewShotQuestion]],
        skip_zero_results: bool = False,
        fail_fast: bool = False,
        verbose: bool = False,
    ) -> List[QQTurn]:
        """
        Generate few-shot examples with a smarter model, and use them for
        every search from now on.

        questions: set clear_history on a question to show the model how a
        new search starts in a longer conversation.
        skip_zero_results: drop questions whose query returned nothing.
        fail_fast: raise on the first failing question instead of skipping it.

        Best run right after seeding the data. History and the model call are
        swapped out for the batch and always restored.
        """
        if self.state.latest_incomplete_question:
            raise SearchInProgress(
                "A search is in progress or partially completed. "
                "Few-shot generation is best done at the very beginning, after seeding your data."
            )

        history_backup = self.state.history
        call_backup = self.call_llm
        self.state.history = []
        self.call_llm = stronger_call_llm

        batch: List[QQTurn] = []
        self._log(verbose, "Generating few-shot examples for %d questions.", len(questions))
        try:
            for item in map(_as_few_shot_question, questions):
                try:
                    if item.clear_history:
                        self.state.history = []
                    messages = self.generate_search_messages(item.question)
                    partial_query = await self.get_query_from_llm(messages)
                    results = self.search_with_partial_query(partial_query)
                    self._log(
                        verbose, "%s -> %s %s (%d results)",
                        item.question, self.query_prefix, partial_query, len(results),
                    )
                    if not skip_zero_results or results:
                        batch.append(QQTurn(question=item.question, partial_query=partial_query))
                except Exception as e:
                    self.state.latest_incomplete_question = None
                    if fail_fast:
                        raise WishfulSearchError(f"Could not process question {item.question} - {e}") from e
                    logger.exception("Could not process question %s", item.question)
        finally:
            self.state.history = history_backup
            self.call_llm = call_backup
            self.state.latest_incomplete_question = None

        self._log(verbose, "Generated examples:\n%s", dumps_pretty([t.model_dump() for t in batch]))
        self.llm_config.few_shot_learning = batch
        return batch

    def close(self) -> None:
        self.db.close()
