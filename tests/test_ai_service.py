from __future__ import annotations

import asyncio
from string import Template
from types import SimpleNamespace

import httpx
import openai
import pytest

from lib.ai_service import SAFETY_SETTINGS, LeaseModelClient
from lib.errors import (
    FailureKind,
    ModelMisconfiguredError,
    ModelRefusedError,
    ModelUnavailableError,
)


class DummyCompletions:
    def __init__(self, response: object = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._response


class DummyClient:
    def __init__(self, completions: DummyCompletions) -> None:
        self.chat = SimpleNamespace(completions=completions)


def _mk_response(*, content=None, finish_reason="stop", choices=True) -> object:
    if not choices:
        return SimpleNamespace(choices=[])
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


def _mk_client(completions: DummyCompletions, api_key: str | None = "test-key") -> LeaseModelClient:
    service = LeaseModelClient(
        api_key=api_key,
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        model_name="gemini-test",
        prompt_template=Template("Lease: $lease_text | Location: $location"),
    )
    if api_key:
        service.client = DummyClient(completions)
    return service


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://example.test/chat/completions")


def test_invoke_sends_low_temperature_and_safety_settings() -> None:
    completions = DummyCompletions(_mk_response(content='{"overallScore": 80}'))
    service = _mk_client(completions)

    result = asyncio.run(service.invoke("lease body $HOME", "Austin, TX"))

    assert result == '{"overallScore": 80}'
    call = completions.calls[0]
    assert call["temperature"] == 0.1
    assert call["max_tokens"] == 4096
    assert call["messages"][0]["content"] == "Lease: lease body $HOME | Location: Austin, TX"
    settings = call["extra_body"]["extra_body"]["google"]["safety_settings"]
    assert settings == SAFETY_SETTINGS
    assert len(settings) == 4
    assert {s["threshold"] for s in settings} == {"BLOCK_MEDIUM_AND_ABOVE"}


def test_blank_location_is_reported_as_not_specified() -> None:
    service = _mk_client(DummyCompletions())

    assert service.build_prompt("text", "  ").endswith("Location: Not specified")


def test_missing_api_key_is_misconfigured_without_network_call() -> None:
    service = _mk_client(DummyCompletions(), api_key=None)

    with pytest.raises(ModelMisconfiguredError) as excinfo:
        asyncio.run(service.invoke("lease", "Austin"))

    assert excinfo.value.kind is FailureKind.MISCONFIGURED


def test_empty_candidate_list_is_refused() -> None:
    service = _mk_client(DummyCompletions(_mk_response(choices=False)))

    with pytest.raises(ModelRefusedError, match="no candidates"):
        asyncio.run(service.invoke("lease", "Austin"))


def test_content_filter_is_refused() -> None:
    service = _mk_client(
        DummyCompletions(_mk_response(content="partial", finish_reason="content_filter"))
    )

    with pytest.raises(ModelRefusedError, match="safety"):
        asyncio.run(service.invoke("lease", "Austin"))


def test_structured_content_parts_are_joined() -> None:
    service = _mk_client(
        DummyCompletions(_mk_response(content=[{"type": "text", "text": '{"overallScore": 1}'}]))
    )

    assert asyncio.run(service.invoke("lease", None)) == '{"overallScore": 1}'


def test_http_error_is_unavailable_and_not_retried() -> None:
    response = httpx.Response(503, request=_request())
    error = openai.InternalServerError("service unavailable", response=response, body=None)
    completions = DummyCompletions(error=error)
    service = _mk_client(completions)

    with pytest.raises(ModelUnavailableError) as excinfo:
        asyncio.run(service.invoke("lease", "Austin"))

    assert excinfo.value.status_code == 503
    assert len(completions.calls) == 1


def test_rejected_credential_is_misconfigured() -> None:
    response = httpx.Response(401, request=_request())
    error = openai.AuthenticationError("bad key", response=response, body=None)
    service = _mk_client(DummyCompletions(error=error))

    with pytest.raises(ModelMisconfiguredError):
        asyncio.run(service.invoke("lease", "Austin"))


def test_connection_error_is_unavailable() -> None:
    error = openai.APIConnectionError(request=_request())
    service = _mk_client(DummyCompletions(error=error))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(service.invoke("lease", "Austin"))
