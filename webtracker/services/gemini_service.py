"""
Gemini Service for Manifest Extraction
Sends free-form shipment text to Gemini and maps the JSON answer onto a Manifest.

Calls go through a process-wide token bucket so bursts of incomplete messages
cannot exhaust the API quota.
"""

import asyncio
import json
import time

import httpx
from pydantic import ValidationError

from webtracker.config import settings
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.domain.manifest_domain import Manifest

logger = get_logger(__name__)

EXTRACTION_PROMPT = """You are a logistics data extraction assistant. Extract shipping information from user text and return JSON matching the schema below.

TARGET SCHEMA:
{
    "receiverName": string,
    "receiverAddress": string,
    "receiverCountry": string,
    "receiverPhone": string,
    "receiverEmail": string,
    "receiverID": string,
    "senderName": string,
    "senderCountry": string
}

RULES:
1. Extract the fields from the input text.
2. If a field is missing, use an empty string "" - DO NOT return null.
3. Infer countries if city names are well-known (e.g. "Paris" -> "France").
4. Phone numbers: Extract as is.

Extract from this:
"""


class GeminiServiceError(Exception):
    """Base exception for Gemini service errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class GeminiRateLimitedError(GeminiServiceError):
    """No token became available within the wait timeout."""


class GeminiResponseError(GeminiServiceError):
    """Gemini answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None, recoverable: bool = False):
        super().__init__(message, recoverable=recoverable)
        self.status_code = status_code


class TokenBucket:
    """
    Async token bucket.

    Refills `rate` tokens per second up to `burst`. `acquire` waits for a token
    for at most `timeout` seconds.
    """

    def __init__(self, rate: float, burst: int):
        self.rate = rate
        self.burst = burst
        self._tokens = float(burst)
        self._updated = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.burst, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    async def acquire(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return True

                wait = (1 - self._tokens) / self.rate
                if time.monotonic() + wait > deadline:
                    return False
                await asyncio.sleep(wait)


def strip_code_fences(raw: str) -> str:
    """Remove the ```json ... ``` wrapper Gemini likes to add."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


class GeminiService:
    """Gemini generateContent client for shipment manifests."""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        limiter: TokenBucket | None = None,
    ):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.url = settings.gemini_url()
        self.wait_timeout = settings.LLM_WAIT_TIMEOUT_SECONDS
        self.limiter = limiter or TokenBucket(settings.LLM_RATE_PER_SECOND, settings.LLM_BURST)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.LLM_HTTP_TIMEOUT_SECONDS)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def extract(self, text: str) -> Manifest:
        """
        Ask Gemini for the manifest fields in `text`.

        Raises:
            GeminiRateLimitedError: no rate token within the wait timeout
            GeminiResponseError: non-200 answer, empty candidates or invalid JSON
            GeminiServiceError: transport failure or missing API key
        """
        if not self.api_key:
            raise GeminiServiceError("GEMINI_API_KEY not configured", recoverable=False)

        if not await self.limiter.acquire(self.wait_timeout):
            logger.warning("Gemini rate limit wait timed out", timeout=self.wait_timeout)
            raise GeminiRateLimitedError("AI rate limit exceeded")

        body = {"contents": [{"parts": [{"text": EXTRACTION_PROMPT + text}]}]}

        try:
            response = await self.client.post(
                self.url,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            logger.error("Gemini request failed", error=str(e), error_type=type(e).__name__)
            raise GeminiServiceError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Gemini API error",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise GeminiResponseError(
                f"AI API error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                recoverable=response.status_code >= 500 or response.status_code == 429,
            )

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> Manifest:
        try:
            payload = response.json()
            ai_text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GeminiResponseError("no AI response") from e

        cleaned = strip_code_fences(ai_text)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse AI JSON", ai_response=cleaned[:200])
            raise GeminiResponseError("Gemini returned invalid JSON") from e

        if not isinstance(data, dict):
            raise GeminiResponseError("Gemini returned a non-object JSON value")

        try:
            manifest = Manifest.model_validate(data)
        except ValidationError as e:
            logger.warning("AI JSON did not match the manifest shape", error_count=e.error_count())
            raise GeminiResponseError("Gemini returned an invalid manifest") from e
        logger.debug("Gemini extraction parsed", fields=[k for k, v in data.items() if v])
        return manifest
