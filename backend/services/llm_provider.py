"""LLM provider selection and timeout-bounded calls.

Two providers are supported: an OpenAI-compatible chat-completions
endpoint (CometAPI, primary) and Google Gemini (secondary). The timeout is
enforced here with asyncio.wait_for, so a hung request is cancelled rather
than trusted to the provider. Every failure surfaces as LLMProviderError.
"""

import asyncio
import json
import logging
import math
import re
from typing import Literal

import httpx
from google import genai
from google.genai import types
from pydantic import BaseModel

from config import settings

logger = logging.getLogger(__name__)

UseCase = Literal["question_selection", "answer_scoring", "final_evaluation"]


class LLMProviderError(Exception):
    """Provider failed: network, non-2xx, empty content or unexpected error."""


class LLMTimeoutError(LLMProviderError):
    """Call exceeded its timeout and was cancelled."""


class ProviderConfig(BaseModel):
    provider: Literal["cometapi", "gemini"]
    model: str
    api_key: str
    base_url: str = ""


class LLMUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    content: str
    usage: LLMUsage | None = None


_gemini_client: genai.Client | None = None


def _get_gemini_client(api_key: str) -> genai.Client:
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = genai.Client(api_key=api_key)
    return _gemini_client


def select_provider(route: str, use_case: UseCase) -> ProviderConfig | None:
    """Pick the provider for a route/use case, or None when no key is set."""
    if settings.cometapi_api_key:
        return ProviderConfig(
            provider="cometapi",
            model=settings.cometapi_model,
            api_key=settings.cometapi_api_key,
            base_url=settings.cometapi_base_url.rstrip("/"),
        )
    if settings.gemini_api_key:
        return ProviderConfig(
            provider="gemini",
            model=settings.gemini_model,
            api_key=settings.gemini_api_key,
        )
    logger.warning("No LLM API key set - %s for %s will use heuristic fallbacks", use_case, route)
    return None


def log_provider_selection(route: str, use_case: UseCase, config: ProviderConfig | None) -> None:
    if config:
        logger.info("LLM provider %s / %s -> %s (%s)", route, use_case, config.provider, config.model)
    else:
        logger.warning("No LLM provider available for %s / %s", route, use_case)


# ---------------------------------------------------------------------------
# Response cleanup
# ---------------------------------------------------------------------------

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_HTML_WRAPPED_RE = re.compile(r"<[^>]+>(\{[\s\S]*\})</[^>]+>")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def extract_json(content: str) -> str:
    """Pull the JSON object out of fenced, HTML-wrapped or chatty content."""
    text = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", content.strip())).strip()

    html_match = _HTML_WRAPPED_RE.search(text)
    if html_match:
        return html_match.group(1)

    obj_match = _JSON_OBJECT_RE.search(text)
    if obj_match and obj_match.group(0) != text:
        return obj_match.group(0)
    return text


def parse_json_object(content: str) -> dict:
    """Decode provider content into a dict. Raises ValueError otherwise."""
    data = json.loads(extract_json(content))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def as_number(value: object) -> float | None:
    """Finite numeric JSON value (or numeric string) as float; None otherwise.

    NaN and infinities count as non-numeric.
    """
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------

async def _call_cometapi(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    timeout_s: float,
) -> LLMResponse:
    payload = {
        "model": config.model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "response_format": {"type": "json_object"},
    }
    headers = {"Authorization": f"Bearer {config.api_key}"}

    async with httpx.AsyncClient(timeout=timeout_s) as client:
        response = await client.post(f"{config.base_url}/chat/completions", json=payload, headers=headers)

    if not response.is_success:
        raise LLMProviderError(f"CometAPI error: {response.status_code} - {response.text[:300]}")

    data = response.json()
    choices = data.get("choices") or [{}]
    content = (choices[0].get("message") or {}).get("content")
    if content is None:
        if choices[0].get("finish_reason") == "length":
            raise LLMProviderError(f"CometAPI hit max_tokens limit ({max_tokens})")
        raise LLMProviderError("CometAPI returned null content")
    if not isinstance(content, str):
        content = json.dumps(content)

    usage = data.get("usage")
    return LLMResponse(content=extract_json(content), usage=LLMUsage(**usage) if usage else None)


async def _call_gemini(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    timeout_s: float,
) -> LLMResponse:
    client = _get_gemini_client(config.api_key)
    response = await client.aio.models.generate_content(
        model=config.model,
        contents=user_prompt,
        config=types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json",
        ),
    )
    text = (response.text or "").strip()
    if not text:
        raise LLMProviderError("Gemini returned empty content")

    meta = response.usage_metadata
    usage = None
    if meta is not None:
        usage = LLMUsage(
            prompt_tokens=meta.prompt_token_count or 0,
            completion_tokens=meta.candidates_token_count or 0,
            total_tokens=meta.total_token_count or 0,
        )
    return LLMResponse(content=extract_json(text), usage=usage)


_PROVIDER_CALLS = {
    "cometapi": _call_cometapi,
    "gemini": _call_gemini,
}


async def call_provider(
    config: ProviderConfig,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.3,
    max_tokens: int = 8192,
    timeout_s: float = 30.0,
) -> LLMResponse:
    """Call the configured provider; raises LLMTimeoutError / LLMProviderError."""
    call = _PROVIDER_CALLS[config.provider]
    try:
        return await asyncio.wait_for(
            call(config, system_prompt, user_prompt, temperature, max_tokens, timeout_s),
            timeout=timeout_s,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise LLMTimeoutError(f"{config.provider} timeout after {timeout_s:g} seconds") from e
    except LLMProviderError:
        raise
    except Exception as e:
        raise LLMProviderError(f"{config.provider} call failed: {e}") from e
