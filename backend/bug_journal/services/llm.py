"""Thin client for OpenAI-compatible chat-completions endpoints."""

import logging
from typing import Any

import httpx

from bug_journal.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Transport failure or malformed answer from the completions endpoint."""


def _request_headers(api_key: str) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


async def chat_completion(
    messages: list[dict[str, Any]],
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    json_mode: bool = False,
    timeout: float = 120.0,
) -> dict[str, Any]:
    """Run one non-streaming completion and return its first choice.

    Unset arguments fall back to the ``llm_*`` settings. Any HTTP error,
    undecodable body or empty ``choices`` list surfaces as ``LLMError``.
    """
    payload: dict[str, Any] = {
        "model": model or settings.llm_model,
        "messages": messages,
        "temperature": temperature if temperature is not None else settings.llm_temperature,
        "max_tokens": max_tokens if max_tokens is not None else settings.llm_max_tokens,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    url = f"{settings.llm_base_url.rstrip('/')}/chat/completions"
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=payload, headers=_request_headers(settings.llm_api_key))
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as e:
        raise LLMError(f"Completion request failed: {e}") from e
    except ValueError as e:
        raise LLMError(f"Completion response is not JSON: {e}") from e

    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices:
        raise LLMError("No choices in completion response")
    usage = data.get("usage") or {}
    logger.debug(
        "Completion finished",
        extra={"model": payload["model"], "total_tokens": usage.get("total_tokens")},
    )
    return choices[0]


def message_content(choice: dict[str, Any]) -> str:
    msg = choice.get("message", choice)
    if isinstance(msg, dict):
        return (msg.get("content") or "").strip()
    return str(msg).strip()
