"""
Tests for the extraction client, its retry policy and both transports.

No network: Gemini goes through httpx.MockTransport, OpenAI through a
MagicMock SDK client, and the retry loop never really sleeps.
"""

import base64
import json
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from jobconnect.core.config import Settings
from jobconnect.core.exceptions import (
    ClientRequestError,
    ConfigurationError,
    MalformedResponse,
    TransientServiceError,
)
from jobconnect.services.extraction_client import (
    ExtractionClient,
    ExtractionTransport,
    GeminiTransport,
    OpenAICompatibleTransport,
    UnconfiguredTransport,
    build_extraction_client,
)
from jobconnect.services.transcript_prompts import MULTI_YEAR_CONTRACT, SUBJECT_LIST_CONTRACT

PDF = b"%PDF-1.4 fake transcript"


class ScriptedTransport(ExtractionTransport):
    """Plays back a list of results; exceptions are raised, strings returned."""

    provider = "Scripted"

    def __init__(self, *script):
        self.script = list(script)
        self.calls = 0

    def send(self, document, contract):
        self.calls += 1
        result = self.script.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_client(transport, max_jitter=0.0, **kwargs):
    sleeps = []
    client = ExtractionClient(
        transport,
        base_delay=1.0,
        max_jitter=max_jitter,
        sleep=sleeps.append,
        **kwargs
    )
    return client, sleeps


class TestRetryPolicy:
    """Which failures are retried and how long we wait."""

    def test_transient_then_success(self):
        transport = ScriptedTransport(
            TransientServiceError("Gemini API error: 503", 503),
            TransientServiceError("Gemini API error: 503", 503),
            '{"years": []}',
        )
        client, sleeps = make_client(transport)

        assert client.extract(PDF, MULTI_YEAR_CONTRACT) == '{"years": []}'
        assert transport.calls == 3
        # base * 2^attempt, no jitter configured
        assert sleeps == [1.0, 2.0]

    def test_client_error_is_not_retried(self):
        transport = ScriptedTransport(ClientRequestError("Gemini API error: 404", 404), "unused")
        client, sleeps = make_client(transport)

        with pytest.raises(ClientRequestError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert transport.calls == 1
        assert sleeps == []

    def test_rate_limit_fails_fast(self):
        transport = ScriptedTransport(ClientRequestError("Gemini API error: 429", 429))
        client, _ = make_client(transport)

        with pytest.raises(ClientRequestError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert transport.calls == 1

    def test_configuration_error_is_not_retried(self):
        client, sleeps = make_client(UnconfiguredTransport("GEMINI_API_KEY is not set"))

        with pytest.raises(ConfigurationError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert sleeps == []

    def test_malformed_response_is_not_retried(self):
        transport = ScriptedTransport(MalformedResponse("Gemini returned no candidates"))
        client, _ = make_client(transport)

        with pytest.raises(MalformedResponse):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert transport.calls == 1

    def test_exhausted_retries_raise_last_error(self, caplog):
        transport = ScriptedTransport(
            TransientServiceError("first", 500),
            TransientServiceError("second", 502),
            TransientServiceError("third", 503),
        )
        client, sleeps = make_client(transport)

        with caplog.at_level(logging.WARNING, logger="jobconnect.services.extraction_client"):
            with pytest.raises(TransientServiceError) as exc:
                client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert exc.value.reason == "third"
        assert transport.calls == 3
        # No wait after the final attempt
        assert len(sleeps) == 2
        assert "Scripted extraction failed after 3 attempts: third" in caplog.text

    def test_backoff_grows_exponentially(self):
        transport = ScriptedTransport(*[TransientServiceError("down", 503)] * 4)
        client, sleeps = make_client(transport, max_attempts=4)

        with pytest.raises(TransientServiceError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert sleeps == [1.0, 2.0, 4.0]

    def test_jitter_is_bounded(self):
        transport = ScriptedTransport(*[TransientServiceError("down", 503)] * 3)
        client, sleeps = make_client(transport, max_jitter=1.0)

        with pytest.raises(TransientServiceError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
        assert 1.0 <= sleeps[0] <= 2.0
        assert 2.0 <= sleeps[1] <= 3.0

    def test_calls_on_a_shared_client_do_not_interfere(self, caplog):
        """A call that succeeds while another is backing off leaves its count alone."""
        transport = ScriptedTransport(
            TransientServiceError("down", 503),  # outer, attempt 1
            "inner ok",                          # inner, attempt 1
            TransientServiceError("down", 503),  # outer, attempt 2
            TransientServiceError("down", 503),  # outer, attempt 3
        )
        inner_results = []

        def sleep(seconds):
            if not inner_results:
                inner_results.append(client.extract(PDF, MULTI_YEAR_CONTRACT))

        client = ExtractionClient(transport, base_delay=0.0, max_jitter=0.0, sleep=sleep)

        with caplog.at_level(logging.WARNING, logger="jobconnect.services.extraction_client"):
            with pytest.raises(TransientServiceError):
                client.extract(PDF, MULTI_YEAR_CONTRACT)

        assert inner_results == ["inner ok"]
        assert transport.calls == 4
        assert "Scripted extraction failed after 3 attempts: down" in caplog.text
        assert not hasattr(client, "attempts")


class TestGeminiTransport:
    """generateContent request shape and response handling."""

    def make_transport(self, handler, api_key="test-key"):
        http = httpx.Client(transport=httpx.MockTransport(handler))
        return GeminiTransport(api_key=api_key, model="gemini-2.5-flash", http_client=http)

    @staticmethod
    def answer(text):
        return {"candidates": [{"content": {"parts": [{"text": text}]}}]}

    def test_request_payload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=self.answer('{"years": []}'))

        transport = self.make_transport(handler)
        assert transport.send(PDF, MULTI_YEAR_CONTRACT) == '{"years": []}'

        assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
        assert seen["key"] == "test-key"
        body = seen["body"]
        inline = body["contents"][0]["parts"][0]["inlineData"]
        assert inline["mimeType"] == "application/pdf"
        assert base64.b64decode(inline["data"]) == PDF
        assert body["contents"][0]["parts"][1]["text"] == MULTI_YEAR_CONTRACT.prompt
        assert body["systemInstruction"]["parts"][0]["text"] == MULTI_YEAR_CONTRACT.system_instruction
        config = body["generationConfig"]
        assert config["temperature"] == 0
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"]["type"] == "OBJECT"
        assert config["responseSchema"]["properties"]["years"]["items"]["type"] == "OBJECT"

    def test_array_contract_schema(self):
        schema = GeminiTransport.to_gemini_schema(SUBJECT_LIST_CONTRACT.response_schema)
        assert schema["type"] == "ARRAY"
        assert schema["items"]["properties"]["mark"]["type"] == "NUMBER"
        assert schema["items"]["required"] == ["subjectCode", "subjectName", "mark", "status"]

    def test_joins_text_parts(self):
        def handler(request):
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [
                {"text": '{"years": '}, {"text": "[]}"}
            ]}}]})

        assert self.make_transport(handler).send(PDF, MULTI_YEAR_CONTRACT) == '{"years": []}'

    def test_missing_key(self):
        transport = self.make_transport(lambda r: httpx.Response(200), api_key="")
        with pytest.raises(ConfigurationError):
            transport.send(PDF, MULTI_YEAR_CONTRACT)

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_errors_are_transient(self, status):
        transport = self.make_transport(lambda r: httpx.Response(status))
        with pytest.raises(TransientServiceError) as exc:
            transport.send(PDF, MULTI_YEAR_CONTRACT)
        assert exc.value.status_code == status
        assert f"Gemini API error: {status}" in exc.value.reason

    @pytest.mark.parametrize("status", [400, 403, 404, 429])
    def test_client_errors(self, status):
        transport = self.make_transport(lambda r: httpx.Response(status))
        with pytest.raises(ClientRequestError) as exc:
            transport.send(PDF, MULTI_YEAR_CONTRACT)
        assert exc.value.status_code == status

    def test_network_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientServiceError):
            self.make_transport(handler).send(PDF, MULTI_YEAR_CONTRACT)

    def test_no_candidates(self):
        transport = self.make_transport(
            lambda r: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})
        )
        with pytest.raises(MalformedResponse) as exc:
            transport.send(PDF, MULTI_YEAR_CONTRACT)
        assert "SAFETY" in exc.value.reason

    def test_empty_answer(self):
        transport = self.make_transport(lambda r: httpx.Response(200, json=self.answer("   ")))
        with pytest.raises(MalformedResponse):
            transport.send(PDF, MULTI_YEAR_CONTRACT)

    def test_non_json_envelope(self):
        transport = self.make_transport(lambda r: httpx.Response(200, text="<html>proxy error</html>"))
        with pytest.raises(MalformedResponse):
            transport.send(PDF, MULTI_YEAR_CONTRACT)

    def test_retried_end_to_end(self):
        responses = [httpx.Response(503), httpx.Response(200, json=self.answer("[]"))]
        client, sleeps = make_client(self.make_transport(lambda r: responses.pop(0)))

        assert client.extract(PDF, MULTI_YEAR_CONTRACT) == "[]"
        assert responses == []
        assert len(sleeps) == 1


class TestOpenAICompatibleTransport:
    """Chat completions with a PDF file part."""

    REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    def make_transport(self, sdk=None):
        sdk = sdk or MagicMock()
        return OpenAICompatibleTransport(api_key="sk-test", model="gpt-4o-mini", client=sdk), sdk

    @staticmethod
    def completion(content):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    def test_request_shape(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.return_value = self.completion('{"years": []}')

        assert transport.send(PDF, MULTI_YEAR_CONTRACT) == '{"years": []}'

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert kwargs["response_format"] == {"type": "json_object"}
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert MULTI_YEAR_CONTRACT.system_instruction in system["content"]
        file_part, text_part = user["content"]
        assert file_part["file"]["file_data"].startswith("data:application/pdf;base64,")
        assert text_part["text"] == MULTI_YEAR_CONTRACT.prompt

    def test_array_contract_has_no_json_object_format(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.return_value = self.completion("[]")

        transport.send(PDF, SUBJECT_LIST_CONTRACT)
        assert "response_format" not in sdk.chat.completions.create.call_args.kwargs

    def test_missing_key(self):
        transport = OpenAICompatibleTransport(api_key="")
        with pytest.raises(ConfigurationError):
            transport.send(PDF, MULTI_YEAR_CONTRACT)

    def test_server_error_is_transient(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.side_effect = APIStatusError(
            "upstream unavailable", response=httpx.Response(503, request=self.REQUEST), body=None
        )
        with pytest.raises(TransientServiceError) as exc:
            transport.send(PDF, MULTI_YEAR_CONTRACT)
        assert exc.value.status_code == 503

    def test_client_error(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.side_effect = APIStatusError(
            "model not found", response=httpx.Response(404, request=self.REQUEST), body=None
        )
        with pytest.raises(ClientRequestError) as exc:
            transport.send(PDF, MULTI_YEAR_CONTRACT)
        assert exc.value.status_code == 404

    def test_connection_error_is_transient(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.side_effect = APIConnectionError(request=self.REQUEST)
        with pytest.raises(TransientServiceError):
            transport.send(PDF, MULTI_YEAR_CONTRACT)

    def test_empty_content(self):
        transport, sdk = self.make_transport()
        sdk.chat.completions.create.return_value = self.completion(None)
        with pytest.raises(MalformedResponse):
            transport.send(PDF, MULTI_YEAR_CONTRACT)


class TestBuildExtractionClient:
    """Settings -> client wiring."""

    def test_gemini_from_settings(self):
        settings = Settings(
            ai_provider="gemini", gemini_api_key="k",
            ai_max_attempts=4, ai_backoff_base_ms=250, ai_backoff_jitter_ms=100
        )
        client = build_extraction_client(settings)

        assert isinstance(client.transport, GeminiTransport)
        assert client.transport.api_key == "k"
        assert client.max_attempts == 4
        assert client.base_delay == 0.25
        assert client.max_jitter == 0.1

    def test_openai_from_settings(self):
        client = build_extraction_client(Settings(ai_provider="openai", openai_api_key="sk"))
        assert isinstance(client.transport, OpenAICompatibleTransport)

    def test_unknown_provider_fails_as_configuration_error(self):
        client = build_extraction_client(Settings(ai_provider="claude-local"))
        with pytest.raises(ConfigurationError):
            client.extract(PDF, MULTI_YEAR_CONTRACT)
