"""
AI Extraction Client

Sends a transcript PDF plus an ExtractionContract to a document-understanding
LLM and returns the raw model text.

Two layers:
- ExtractionTransport: one request to one provider. Knows the wire format,
  maps provider failures onto the TranscriptError taxonomy.
- ExtractionClient: provider-agnostic retry loop (tenacity) with exponential backoff.

Retry policy:
- ConfigurationError, ClientRequestError (4xx) -> fail fast, 1 attempt
- TransientServiceError (5xx, network, timeout) -> retried, max 3 attempts,
  delay = base * 2^attempt + uniform(0, jitter)

Temperature is always 0: the averages computed downstream assume the same
document yields the same marks.
"""

import base64
import json
import logging
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

import httpx
from openai import OpenAI, APIConnectionError, APIStatusError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from jobconnect.core.config import Settings, get_settings
from jobconnect.core.exceptions import (
    ConfigurationError,
    ClientRequestError,
    TransientServiceError,
    MalformedResponse,
)
from jobconnect.services.transcript_prompts import ExtractionContract

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def _raise_for_status(provider: str, status_code: int, detail: str = "") -> None:
    """Map an HTTP status onto ClientRequestError / TransientServiceError."""
    message = f"{provider} API error: {status_code}"
    if detail:
        message = f"{message} {detail}"
    if 400 <= status_code < 500:
        raise ClientRequestError(message, status_code)
    if status_code >= 500:
        raise TransientServiceError(message, status_code)


# ============================================================
# TRANSPORTS
# ============================================================

class ExtractionTransport(ABC):
    """One outbound request to one provider. No retries here."""

    provider = "ai"

    @abstractmethod
    def send(self, document: bytes, contract: ExtractionContract) -> str:
        """Return the model's text answer for `document`."""


class GeminiTransport(ExtractionTransport):
    """
    Google Gemini generateContent REST endpoint.

    The PDF goes inline (base64) next to the prompt; the schema is enforced
    server-side through generationConfig.responseSchema.
    """

    provider = "Gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        http_client: Optional[httpx.Client] = None
    ):
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.http = http_client or httpx.Client(timeout=timeout)

    @staticmethod
    def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
        """Gemini wants OpenAPI-style upper-case type names."""
        converted = {}
        for key, value in schema.items():
            if key == "type":
                converted[key] = value.upper()
            elif key == "properties":
                converted[key] = {k: GeminiTransport.to_gemini_schema(v) for k, v in value.items()}
            elif key == "items":
                converted[key] = GeminiTransport.to_gemini_schema(value)
            else:
                converted[key] = value
        return converted

    def build_payload(self, document: bytes, contract: ExtractionContract) -> dict:
        return {
            "contents": [{
                "role": "user",
                "parts": [
                    {"inlineData": {
                        "mimeType": PDF_MIME_TYPE,
                        "data": base64.b64encode(document).decode("ascii"),
                    }},
                    {"text": contract.prompt},
                ],
            }],
            "systemInstruction": {"parts": [{"text": contract.system_instruction}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": self.to_gemini_schema(contract.response_schema),
                "temperature": 0,
            },
        }

    def send(self, document: bytes, contract: ExtractionContract) -> str:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        try:
            response = self.http.post(
                self.url,
                json=self.build_payload(document, contract),
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise TransientServiceError(f"Gemini request failed: {e}") from e

        if response.status_code >= 400:
            _raise_for_status(self.provider, response.status_code, response.reason_phrase)

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse("Gemini returned a non-JSON envelope") from e

        candidates = body.get("candidates") or []
        if not candidates:
            feedback = body.get("promptFeedback", {}).get("blockReason")
            raise MalformedResponse(
                f"Gemini returned no candidates (blocked: {feedback})" if feedback
                else "Gemini returned no candidates"
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise MalformedResponse("Gemini returned an empty answer")
        return text


class OpenAICompatibleTransport(ExtractionTransport):
    """
    Any OpenAI-compatible chat completions API that accepts PDF file parts.

    The SDK's own retries are switched off; ExtractionClient owns retrying.
    """

    provider = "OpenAI"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        client: Optional[OpenAI] = None
    ):
        self.api_key = api_key
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = OpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0
            )

    def build_messages(self, document: bytes, contract: ExtractionContract) -> list:
        encoded = base64.b64encode(document).decode("ascii")
        system_prompt = (
            f"{contract.system_instruction}\n\n"
            f"Return JSON matching this schema:\n{json.dumps(contract.response_schema)}"
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": [
                {"type": "file", "file": {
                    "filename": "transcript.pdf",
                    "file_data": f"data:{PDF_MIME_TYPE};base64,{encoded}",
                }},
                {"type": "text", "text": contract.prompt},
            ]},
        ]

    def send(self, document: bytes, contract: ExtractionContract) -> str:
        if not self.api_key or self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        kwargs = {}
        if contract.expects_object:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(document, contract),
                temperature=0,
                **kwargs
            )
        except APIStatusError as e:
            _raise_for_status(self.provider, e.status_code, e.message)
            raise
        except APIConnectionError as e:
            raise TransientServiceError(f"OpenAI request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise MalformedResponse("OpenAI returned an empty answer")
        return response.choices[0].message.content


class UnconfiguredTransport(ExtractionTransport):
    """Stand-in for an unknown AI_PROVIDER; every call fails as a config error."""

    def __init__(self, reason: str):
        self.reason = reason

    def send(self, document: bytes, contract: ExtractionContract) -> str:
        raise ConfigurationError(self.reason)


# ============================================================
# CLIENT (RETRY LOOP)
# ============================================================

class ExtractionClient:
    """
    Wraps a transport with tenacity-driven exponential backoff.

    Every extract() builds its own Retrying controller, so one client can be
    shared by concurrent requests. `sleep` is injectable so tests never wait.
    """

    def __init__(
        self,
        transport: ExtractionTransport,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_jitter: float = 1.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.transport = transport
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2) + wait_random(0, self.max_jitter),
            retry=retry_if_exception_type(TransientServiceError),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def extract(self, document: bytes, contract: ExtractionContract) -> str:
        """
        Send `document` and return the raw model text.

        Raises the last TransientServiceError once attempts are exhausted;
        ConfigurationError / ClientRequestError / MalformedResponse are
        raised on the attempt that produced them.
        """
        retrying = self._retrying()
        try:
            return retrying(self.transport.send, document, contract)
        except TransientServiceError as e:
            logger.warning(
                "%s extraction failed after %d attempts: %s",
                self.transport.provider, retrying.statistics.get("attempt_number", 0), e.reason
            )
            raise


def build_transport(settings: Settings) -> ExtractionTransport:
    if settings.ai_provider == "gemini":
        return GeminiTransport(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.ai_timeout_seconds
        )
    if settings.ai_provider == "openai":
        return OpenAICompatibleTransport(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.ai_timeout_seconds
        )
    logger.error("Unknown AI_PROVIDER %r - transcript parsing disabled", settings.ai_provider)
    return UnconfiguredTransport(f"Unknown AI_PROVIDER '{settings.ai_provider}'")


def build_extraction_client(settings: Settings) -> ExtractionClient:
    """Build the client from settings. The credential is passed in explicitly here."""
    return ExtractionClient(
        transport=build_transport(settings),
        max_attempts=settings.ai_max_attempts,
        base_delay=settings.ai_backoff_base_ms / 1000.0,
        max_jitter=settings.ai_backoff_jitter_ms / 1000.0
    )


@lru_cache()
def get_extraction_client() -> ExtractionClient:
    """Process-wide client (singleton)."""
    return build_extraction_client(get_settings())
