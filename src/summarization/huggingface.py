"""Meeting summarization via the Hugging Face inference API.

The model endpoint answers 503 (or a JSON ``error`` mentioning "loading")
while it warms up.  Those responses are retried under a
:class:`~src.pipeline_config.RetryPolicy`; every other failure is returned as
a degraded :class:`SummaryResult` rather than raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import httpx

from src.config import Settings
from src.pipeline_config import PipelineConfig, RetryPolicy
from src.summarization.keypoints import extract_key_points

logger = logging.getLogger(__name__)

# Field names that carry the summary in a response object, in preference order
TEXT_FIELDS = ("summary_text", "generated_text")

NO_SUMMARY_MESSAGE = "No summary returned from HuggingFace API."
NO_SUMMARY_KEY_POINTS = ["No summary available"]


class SummaryStatus(StrEnum):
    """Outcome of a summarization call."""

    OK = "ok"
    NO_SUMMARY = "no_summary"
    ERROR = "error"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True)
class SummaryResult:
    """Summary text and key points; on failure ``summary`` holds the reason."""

    summary: str
    key_points: list[str] = field(default_factory=list)
    status: SummaryStatus = SummaryStatus.OK

    @property
    def usable(self) -> bool:
        """True when the result can be shown as the meeting summary."""
        if self.status in (SummaryStatus.ERROR, SummaryStatus.RETRIES_EXHAUSTED):
            return False
        return bool(self.summary) and bool(self.key_points)


class SummaryParseError(ValueError):
    """The model returned JSON in a shape we do not recognise."""


def _text_field(obj: dict[str, Any]) -> str:
    for name in TEXT_FIELDS:
        value = obj.get(name)
        if isinstance(value, str) and value:
            return value
    return ""


def parse_summary_payload(data: Any) -> str:
    """Extract summary text from a successful model response.

    Accepted shapes:

    - ``[{"summary_text": ...}, ...]`` (or ``generated_text``)
    - ``"plain string"``
    - ``{"summary_text": ...}`` (or ``generated_text``)

    A recognised shape without text yields ``""``.

    Raises:
        SummaryParseError: For any other JSON shape.
    """
    if isinstance(data, list):
        if not data:
            return ""
        if isinstance(data[0], dict):
            return _text_field(data[0])
        raise SummaryParseError(f"Unexpected list element: {type(data[0]).__name__}")
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return _text_field(data)
    raise SummaryParseError(f"Unexpected summary payload: {type(data).__name__}")


def _error(message: str) -> SummaryResult:
    return SummaryResult(summary=message, key_points=[], status=SummaryStatus.ERROR)


class HuggingFaceSummarizer:
    """Summarize a combined transcript with a hosted seq2seq model."""

    def __init__(
        self,
        api_key: str,
        model: str = "facebook/bart-large-cnn",
        base_url: str = "https://router.huggingface.co/hf-inference/models",
        retry: RetryPolicy | None = None,
        max_input_chars: int = 4000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/{model}"
        self.retry = retry or RetryPolicy()
        self.max_input_chars = max_input_chars
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, config: PipelineConfig | None = None
    ) -> HuggingFaceSummarizer:
        config = config or PipelineConfig.from_settings(settings)
        return cls(
            api_key=settings.huggingface_api_key,
            model=settings.summarization_model,
            base_url=settings.summarization_base_url,
            retry=config.retry,
            max_input_chars=config.max_input_chars,
        )

    async def summarize(self, transcript: str) -> SummaryResult:
        """Summarize ``transcript`` (truncated to ``max_input_chars``)."""
        payload = {"inputs": transcript[: self.max_input_chars]}
        logger.info("Summarizing %d chars with %s", len(payload["inputs"]), self.url)

        loop = asyncio.get_running_loop()
        started = loop.time()
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._attempt(payload)
            except httpx.HTTPError as exc:
                logger.exception("Hugging Face summarization request failed")
                return _error(f"Summarization request failed: {exc}")
            if result is not None:
                return result

            elapsed = loop.time() - started
            out_of_attempts = attempt >= self.retry.max_attempts
            out_of_time = elapsed + self.retry.backoff > self.retry.max_elapsed
            if out_of_attempts or out_of_time:
                logger.error("Summarization model still loading after %d attempts", attempt)
                return SummaryResult(
                    summary=f"Summarization model was not ready after {attempt} attempts.",
                    key_points=[],
                    status=SummaryStatus.RETRIES_EXHAUSTED,
                )
            logger.info("Model loading... retrying in %.0fs", self.retry.backoff)
            await asyncio.sleep(self.retry.backoff)

    async def _post(self, payload: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=payload, headers=self._headers)
        async with httpx.AsyncClient(timeout=60.0) as client:
            return await client.post(self.url, json=payload, headers=self._headers)

    async def _attempt(self, payload: dict[str, str]) -> SummaryResult | None:
        """Make one call. Returns None when the model is still loading."""
        response = await self._post(payload)
        body = response.text
        content_type = response.headers.get("content-type", "")

        if response.status_code == 503:
            logger.warning("Hugging Face model unavailable (503): %s", body[:500])
            return None
        if not response.is_success:
            logger.error("Hugging Face HTTP error %d: %s", response.status_code, body[:500])
            return _error(
                f"HuggingFace API error ({response.status_code}): {response.reason_phrase}"
            )

        if "application/json" not in content_type:
            logger.error("Hugging Face returned non-JSON (%s): %s", content_type, body[:500])
            if body.strip().lower().startswith("<!doctype"):
                return _error(
                    "HuggingFace API returned an error page. "
                    "Please check your API key and model availability."
                )
            return _error("HuggingFace API returned unexpected response format.")

        try:
            data = json.loads(body)
        except ValueError:
            logger.error("Failed to parse Hugging Face response: %s", body[:500])
            return _error("Failed to parse HuggingFace API response.")

        if isinstance(data, dict) and data.get("error"):
            error = str(data["error"])
            if "loading" in error:
                logger.warning("Hugging Face model loading: %s", error)
                return None
            logger.error("Hugging Face API error: %s", error)
            return _error(f"Hugging Face API error: {error}")

        try:
            text = parse_summary_payload(data)
        except SummaryParseError as exc:
            logger.error("Unrecognised Hugging Face payload: %s", exc)
            return _error("HuggingFace API returned unexpected response format.")

        if not text:
            logger.warning("No summary in Hugging Face response: %s", body[:500])
            return SummaryResult(
                summary=NO_SUMMARY_MESSAGE,
                key_points=list(NO_SUMMARY_KEY_POINTS),
                status=SummaryStatus.NO_SUMMARY,
            )

        logger.info("Summary generated (%d chars)", len(text))
        return SummaryResult(summary=text, key_points=extract_key_points(text))
