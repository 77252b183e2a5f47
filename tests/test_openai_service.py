from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from openai import APIConnectionError, OpenAIError

from tests.fakes import FakeOpenAI
from vwvideos.app.services.openai_service import (
    MAX_SUGGESTED_TAGS,
    OpenAIClassifier,
    OpenAIConfigurationError,
    OpenAIResponseError,
    OpenAIServiceError,
    build_classification_prompt,
    parse_classification,
)


class _RaisingCompletions:
    def __init__(self, error: Exception) -> None:
        self._error = error

    def create(self, **kwargs: Any) -> Any:
        raise self._error


def _classifier_raising(error: Exception) -> OpenAIClassifier:
    client = SimpleNamespace(chat=SimpleNamespace(completions=_RaisingCompletions(error)))
    return OpenAIClassifier("key", client_factory=lambda _api_key: client)


def test_prompt_lists_allowed_types_and_categories() -> None:
    prompt = build_classification_prompt(
        transcript="pull the engine",
        category_names=["Engine", "Brakes"],
        vw_type_names=["Beetle", "Bus"],
        title="Engine drop",
    )

    assert 'Allowed "vwTypes": [Beetle, Bus]' in prompt
    assert 'Allowed "categories": [Engine, Brakes]' in prompt
    assert 'Video Title: "Engine drop"' in prompt
    assert prompt.endswith('Video Transcript: "pull the engine"')
    assert '{ "isHowToVWVideo": false }' in prompt


def test_classify_transcript_sends_json_mode_request(
    classifier: OpenAIClassifier, fake_openai: FakeOpenAI
) -> None:
    fake_openai.payloads_by_title["Swap a Bus transaxle"] = {
        "isHowToVWVideo": True,
        "vwTypes": ["Bus", " "],
        "categories": ["Transaxle"],
        "tags": ["gearbox", "swap", "IRS", "bus", "tools", "extra"],
    }

    result = classifier.classify_transcript(
        "first support the gearbox",
        category_names=["Transaxle"],
        vw_type_names=["Bus"],
        title="Swap a Bus transaxle",
    )

    assert result.is_how_to_vw_video is True
    assert result.vw_types == ["Bus"]
    assert result.categories == ["Transaxle"]
    assert len(result.tags) == MAX_SUGGESTED_TAGS
    assert "extra" not in result.tags
    assert len(fake_openai.prompts) == 1


def test_classify_requires_api_key_and_transcript(classifier: OpenAIClassifier) -> None:
    unconfigured = OpenAIClassifier(None)
    assert unconfigured.configured is False
    with pytest.raises(OpenAIConfigurationError):
        unconfigured.classify_transcript("text", category_names=[], vw_type_names=[], title="t")

    with pytest.raises(OpenAIServiceError, match="Transcript is empty or not provided."):
        classifier.classify_transcript("   ", category_names=[], vw_type_names=[], title="t")


def test_api_errors_are_wrapped() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    classifier = _classifier_raising(APIConnectionError(request=request))

    with pytest.raises(OpenAIServiceError) as raised:
        classifier.classify_transcript("text", category_names=[], vw_type_names=[], title="t")
    assert str(raised.value).startswith("OpenAI API Error: ")
    assert "APIConnectionError" in str(raised.value)

    generic = _classifier_raising(OpenAIError("socket closed"))
    with pytest.raises(OpenAIServiceError, match="An unexpected error occurred"):
        generic.classify_transcript("text", category_names=[], vw_type_names=[], title="t")


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[]",
        '{"isHowToVWVideo": "yes"}',
        '{"vwTypes": ["Bus"]}',
    ],
)
def test_parse_classification_rejects_malformed_payloads(content: str) -> None:
    with pytest.raises(OpenAIResponseError):
        parse_classification(content)


def test_parse_classification_defaults_missing_lists() -> None:
    result = parse_classification('{"isHowToVWVideo": false, "tags": "not-a-list"}')

    assert result.is_how_to_vw_video is False
    assert result.tags == []
    assert result.categories == []
