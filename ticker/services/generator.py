"""
Content Generator - Produces raw card records for a profile.

The generator is an opaque collaborator: it returns unvalidated dicts
and the card service decides what survives.
"""

import json
from typing import Any, Protocol

import httpx
from structlog import get_logger

from ticker.config import settings
from ticker.exceptions import GenerationFailedError, GeneratorUnavailableError
from ticker.models.domain import GenerationRequest
from ticker.services.prompts import SYSTEM_PROMPT, build_prompt

logger = get_logger(__name__)


class ContentGenerator(Protocol):
    async def generate(self, request: GenerationRequest) -> list[dict[str, Any]]: ...


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def parse_records(content: str) -> list[dict[str, Any]]:
    """
    Parse the model output into a list of raw records.

    Raises:
        GenerationFailedError: Output is not a JSON array
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise GenerationFailedError(f"generator returned invalid JSON: {exc.msg}") from exc

    if not isinstance(parsed, list):
        raise GenerationFailedError("generator output is not a JSON array")

    return [item for item in parsed if isinstance(item, dict)]


class OpenAIContentGenerator:
    """Generator backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.openai_model
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.generator_timeout_seconds)
        return self._http_client

    async def generate(self, request: GenerationRequest) -> list[dict[str, Any]]:
        """
        Ask the model for `request.count` cards.

        Raises:
            GeneratorUnavailableError: Network failure, 429 or 5xx (retryable)
            GenerationFailedError: Any other bad response
        """
        prompt = build_prompt(
            request.profile,
            request.category,
            request.count,
            exclude=request.exclude,
            rotation_theme=request.rotation_theme,
        )
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": settings.openai_max_tokens,
            "temperature": settings.openai_temperature,
        }

        try:
            response = await self.http_client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("generator_http_error", status=status, text=e.response.text[:500])
            if status == 429 or status >= 500:
                raise GeneratorUnavailableError(f"upstream returned {status}") from e
            raise GenerationFailedError(f"upstream returned {status}") from e
        except httpx.HTTPError as e:
            logger.error("generator_request_failed", error=str(e))
            raise GeneratorUnavailableError(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise GenerationFailedError("upstream response is not JSON") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailedError("upstream response has no message content") from e

        records = parse_records(content or "")
        logger.info(
            "generator_records_received",
            category=request.category.value,
            requested=request.count,
            received=len(records),
        )
        return records

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
