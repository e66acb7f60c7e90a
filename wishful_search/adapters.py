"""
Model gateways.

Every adapter boils down to one async function:

    call_llm(messages, query_prefix=None) -> str | None

None means the provider failed and there is nothing to work with. Adapters
are picked when the engine is built; the engine never knows which provider
it talks to.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from . import settings
from .models import LLMAdapter, LLMConfig, Message
from .templates import render

logger = logging.getLogger(__name__)


DEFAULT_TEMPERATURE = 0


def _openai_client() -> Optional[AsyncOpenAI]:
    if not settings.openai_api_key():
        return None
    return AsyncOpenAI(base_url=settings.base_url())


def get_openai_adapter(
    client: Optional[Any] = None,
    model: Optional[str] = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: Optional[int] = None,
) -> LLMAdapter:
    """Adapter for chat completion endpoints (OpenAI or compatible)."""
    client = client or AsyncOpenAI(base_url=settings.base_url())
    model = model or settings.model_name()

    async def call_llm(messages: List[Message], query_prefix: Optional[str] = None) -> Optional[str]:
        params: Dict[str, Any] = {"model": model, "temperature": temperature, "messages": messages}
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        try:
            completion = await client.chat.completions.create(**params)
        except OpenAIError as e:
            logger.error("Chat completion failed (%s): %s", model, e)
            return None
        if not completion or not completion.choices:
            return None
        return completion.choices[0].message.content or None

    return LLMAdapter(llm_config=LLMConfig(enable_todays_date=True), call_llm=call_llm)


def get_template_adapter(
    template: str,
    client: Optional[Any] = None,
    model: Optional[str] = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: Optional[int] = None,
) -> LLMAdapter:
    """
    Adapter for raw completion endpoints (local models behind an
    OpenAI-compatible server). Messages are rendered with a prompt template.
    """
    client = client or AsyncOpenAI(base_url=settings.base_url())
    model = model or settings.model_name()

    async def call_llm(messages: List[Message], query_prefix: Optional[str] = None) -> Optional[str]:
        prompt, stop = render(template, messages)
        params: Dict[str, Any] = {"model": model, "temperature": temperature, "prompt": prompt, "stop": stop}
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        try:
            completion = await client.completions.create(**params)
        except OpenAIError as e:
            logger.error("Completion failed (%s, %s template): %s", model, template, e)
            return None
        if not completion or not completion.choices:
            return None
        text = completion.choices[0].text or ""
        if not text.strip():
            return None
        # The prompt ended inside the prefix anchor, so the text continues it
        if query_prefix and messages and messages[-1]["role"] == "assistant":
            return f"{messages[-1]['content']} {text.strip()}"
        return text

    return LLMAdapter(llm_config=LLMConfig(enable_todays_date=True), call_llm=call_llm)


def configure_model() -> Optional[LLMAdapter]:
    """Default adapter from the environment, or None when no API key is set."""
    client = _openai_client()
    if client is None:
        return None
    return get_openai_adapter(client=client)
