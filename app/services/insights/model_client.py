"""
Bounded-time client for the text-completion service.

One call per rubric run: the request is wrapped in ``asyncio.timeout`` so
that an elapsed deadline cancels the in-flight HTTP request, and failures
are mapped onto distinct error kinds (timeout, HTTP, parse).
"""

import asyncio
import json
import logging
import re
from typing import Any

import anthropic
import httpx

from app.config import settings
from app.services.insights.exceptions import (
    ModelConfigurationError,
    ModelHttpError,
    ModelTimeoutError,
    ResponseParseError,
)
from app.services.insights.prompts import JSON_ONLY_INSTRUCTION

logger = logging.getLogger(__name__)

# Fence wrapping the whole response, with or without a language tag
_FENCE_PATTERN = re.compile(
    r"^\s*```(?:json)?[ \t]*\n?(.*)\n?\s*```\s*$", re.DOTALL | re.IGNORECASE
)
# Greedy: from the first "{" to the last "}"
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Return the body of a fence that wraps the whole text, or the text itself."""
    match = _FENCE_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_payload(text: str) -> dict[str, Any]:
    """
    Extract a JSON object from a natural-language model response.

    Two stages: strict parse of the text (as is, then without a wrapping
    fence), then a parse of the outermost ``{...}`` span of the original
    text. If the extracted span is itself malformed we give up rather than
    attempt further repair.

    Raises:
        ResponseParseError: with the raw text attached
    """
    stripped = text.strip()
    candidates = [stripped]
    unfenced = strip_code_fence(text)
    if unfenced != stripped:
        candidates.append(unfenced)

    parse_error: json.JSONDecodeError | None = None
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
            break
        except json.JSONDecodeError as e:
            parse_error = parse_error or e
    else:
        match = _OBJECT_PATTERN.search(text)
        if match is None:
            raise ResponseParseError(
                f"Failed to parse model response as JSON: {parse_error}",
                raw_text=text,
            ) from parse_error
        try:
            parsed = json.loads(match.group())
        except json.JSONDecodeError as extract_error:
            raise ResponseParseError(
                f"Failed to parse extracted JSON from model response: {extract_error}",
                raw_text=text,
            ) from extract_error
        logger.debug("[insights] Recovered JSON object from surrounding text")

    if not isinstance(parsed, dict):
        raise ResponseParseError(
            f"Model response is JSON but not an object ({type(parsed).__name__})",
            raw_text=text,
        )
    return parsed


def _response_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    parts = [block.text for block in response.content if getattr(block, "text", None)]
    return "".join(parts)


class ModelClient:
    """Issues one bounded-time completion call and returns parsed JSON."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.insights_model
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.model_timeout_seconds
        )
        self.temperature = (
            temperature if temperature is not None else settings.insights_temperature
        )
        self.max_tokens = max_tokens or settings.insights_max_tokens
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            # Pooled transport reused by every rubric call of a batch. Per-call
            # deadlines come from asyncio.timeout in complete(); the transport
            # timeout only guards a stalled connect. No SDK retries: every
            # rubric run makes at most one call.
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                http_client=httpx.AsyncClient(
                    timeout=httpx.Timeout(60.0, connect=5.0),
                    limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                ),
                max_retries=0,
            )
            logger.debug("[insights] Opened pooled model client")
        return self._client

    async def aclose(self) -> None:
        """Close pooled connections (app shutdown); a later call reopens them."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.debug("[insights] Closed model client")

    async def complete(self, system_instruction: str, prompt: str) -> dict[str, Any]:
        """
        Ask the model to analyze ``prompt`` and return its JSON answer.

        Raises:
            ModelConfigurationError: no API key configured
            ModelTimeoutError: the deadline elapsed; the request was cancelled
            ModelHttpError: non-2xx status or connection failure
            ResponseParseError: no JSON object could be recovered
        """
        if not self.api_key and self._client is None:
            raise ModelConfigurationError("Model API key not configured")

        logger.info(f"[insights] Calling model {self.model} (prompt {len(prompt)} chars)")

        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    system=f"{system_instruction} {JSON_ONLY_INSTRUCTION}",
                    messages=[{"role": "user", "content": prompt}],
                )
        except TimeoutError as e:
            logger.error(f"[insights] Model request cancelled after {self.timeout_seconds:g}s")
            raise ModelTimeoutError(self.timeout_seconds) from e
        except anthropic.APITimeoutError as e:
            logger.error(f"[insights] Model request timed out in transport: {e}")
            raise ModelTimeoutError(self.timeout_seconds) from e
        except anthropic.APIStatusError as e:
            logger.error(f"[insights] Model API error {e.status_code}: {e.message}")
            raise ModelHttpError(
                f"Model API error: {e.status_code}", status_code=e.status_code
            ) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"[insights] Model API unreachable: {e}")
            raise ModelHttpError(f"Model API unreachable: {e}") from e

        text = _response_text(response)
        if not text.strip():
            raise ResponseParseError("No content in model response", raw_text=text)

        logger.debug(f"[insights] Raw model content preview: {text[:200]}")
        parsed = parse_json_payload(text)
        logger.info(f"[insights] Parsed model response with keys: {sorted(parsed)}")
        return parsed


model_client = ModelClient()
