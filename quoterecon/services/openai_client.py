"""OpenAI Chat Completions client for quote extraction.

A single call per document: no automatic retry, since repeated model calls
are costly and their content is not idempotent. The call is async so the
caller can cancel it when the user goes away.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog
from openai import AsyncOpenAI

from quoterecon.config import settings
from quoterecon.errors import (
    ExtractionError,
    ExtractionNotConfiguredError,
    ExtractionRateLimitedError,
    UnreadableDocumentError,
)

logger = structlog.get_logger(__name__)


def is_configured() -> bool:
    return bool(settings.openai_api_key)


def _get_client() -> AsyncOpenAI:
    """Create an OpenAI client with retries disabled."""
    if not is_configured():
        raise ExtractionNotConfiguredError()
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.extraction_timeout_seconds,
        max_retries=0,
    )


async def call_openai_json(
    messages: list[dict[str, Any]],
    model: str | None = None,
) -> str:
    """Call Chat Completions in JSON mode and return the raw message text.

    Raises:
        ExtractionNotConfiguredError: no API key.
        ExtractionRateLimitedError: provider rate limit (caller may retry later).
        UnreadableDocumentError: timeout, refusal or empty answer.
        ExtractionError: any other provider failure.
    """
    model = model or settings.openai_vision_model
    client = _get_client()

    logger.info("openai_call_start", model=model)
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=0.1,
            max_tokens=settings.extraction_max_tokens,
        )
    except openai.RateLimitError as exc:
        logger.warning("openai_rate_limited", model=model, error=str(exc))
        raise ExtractionRateLimitedError() from exc
    except openai.APITimeoutError as exc:
        logger.warning("openai_timeout", model=model, timeout=settings.extraction_timeout_seconds)
        raise UnreadableDocumentError() from exc
    except openai.AuthenticationError as exc:
        logger.error("openai_auth_failed", model=model)
        raise ExtractionNotConfiguredError() from exc
    except openai.OpenAIError as exc:
        logger.error("openai_call_failed", model=model, error=str(exc))
        raise ExtractionError(str(exc)) from exc
    finally:
        await client.close()

    if not response.choices or not response.choices[0].message.content:
        logger.warning("openai_empty_response", model=model)
        raise UnreadableDocumentError()

    raw_text = response.choices[0].message.content
    logger.info("openai_call_success", model=model, chars=len(raw_text))
    return raw_text
