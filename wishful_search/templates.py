"""
Raw prompt templates for completion-style models.

Chat messages are flattened into one prompt string. A trailing assistant
message is left open so the model continues it, which is how the query
prefix anchor reaches models without a chat endpoint.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from .models import Message

RenderedPrompt = Tuple[str, List[str]]


def mistral_prompt(messages: List[Message]) -> RenderedPrompt:
    parts = []
    for idx, message in enumerate(messages):
        if message["role"] == "assistant":
            end = "</s>" if idx < len(messages) - 1 else ""
            parts.append(f"{message['content']}{end}")
            continue
        starts_turn = idx == 0 or messages[idx - 1]["role"] == "assistant"
        content = message["content"]
        if message["role"] == "system":
            content = f"<system>{content}</system>"
        parts.append(f"{'<s>' if starts_turn else ''}[INST] {content} [/INST]")
    return " ".join(parts), ["</s>", "<s>"]


def chatml_prompt(messages: List[Message]) -> RenderedPrompt:
    parts = []
    for idx, message in enumerate(messages):
        role = message["role"]
        if role == "assistant" and idx == len(messages) - 1:
            parts.append(f"<|im_start|>assistant\n{message['content']}")
        else:
            parts.append(f"<|im_start|>{role}\n{message['content']}<|im_end|>")
    prompt = "\n".join(parts)
    if messages and messages[-1]["role"] != "assistant":
        prompt += "\n<|im_start|>assistant\n"
    return prompt, ["<|im_end|>", "<|im_start|>"]


TEMPLATES: Dict[str, Callable[[List[Message]], RenderedPrompt]] = {
    "mistral": mistral_prompt,
    "chatml": chatml_prompt,
}


def render(template: str, messages: List[Message]) -> RenderedPrompt:
    if template not in TEMPLATES:
        raise ValueError(f"Unknown prompt template: {template}. Choose one of: {', '.join(TEMPLATES)}.")
    return TEMPLATES[template](messages)
