from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import UpstreamUnavailable
from app.services.gemini_service import GeminiService
from app.services.request_composer import RequestComposer


@pytest.fixture
def request_payload():
    return RequestComposer(model="gemini-test").compose("claim")


def test_generate_returns_text_and_citations(request_payload, sample_grounding_response):
    client = MagicMock()
    client.models.generate_content.return_value = sample_grounding_response

    reply = GeminiService(client=client).generate(request_payload)

    client.models.generate_content.assert_called_once_with(
        model="gemini-test",
        contents=request_payload.contents,
        config=request_payload.config,
    )
    assert reply.text.startswith("FALSE")
    assert [c.url for c in reply.citations] == [
        "https://vertexaisearch.cloud.google.com/grounding-api-redirect/abc",
        "https://apnews.com/article/1",
    ]
    assert reply.citations[0].title == "reuters.com"
    assert reply.citations[1].title == ""


def test_missing_text_and_metadata(request_payload):
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(
        text=None,
        candidates=[SimpleNamespace(grounding_metadata=None)],
    )

    reply = GeminiService(client=client).generate(request_payload)

    assert reply.text == ""
    assert reply.citations == []


def test_no_candidates():
    assert GeminiService.extract_citations(SimpleNamespace(candidates=None)) == []


def test_transport_error_becomes_upstream_unavailable(request_payload):
    client = MagicMock()
    client.models.generate_content.side_effect = TimeoutError("read timed out")

    with pytest.raises(UpstreamUnavailable) as exc_info:
        GeminiService(client=client).generate(request_payload)

    assert exc_info.value.status_code == 502
    assert exc_info.value.details["retryable"] is True


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr("app.services.gemini_service.GEMINI_API_KEY", None)
    with pytest.raises(ValueError):
        GeminiService()
