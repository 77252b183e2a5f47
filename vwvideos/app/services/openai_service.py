from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from openai import APIError, OpenAI, OpenAIError

LOGGER = logging.getLogger("howto_vw.openai")

MAX_SUGGESTED_TAGS = 5

OpenAIClientFactory = Callable[[str], Any]

_PROMPT_TEMPLATE = """You are an expert in vintage air-cooled Volkswagen vehicles, including Beetles, Buses, Ghias, and related models. You are helping to classify YouTube videos that may be educational or instructional ("how-to") content specifically about working on these types of vehicles.

Your job is to analyze the provided video title and transcript, then decide if the video is a how-to video about vintage air-cooled Volkswagens. If so, classify the vehicle types, relevant topic categories, and provide up to 5 specific tags.

Use the following decision logic:

1. The video **must** be instructional or demonstrative in nature (not purely opinion, entertainment, or historical overview). The title might provide clues.
2. The video **must clearly relate to** vintage air-cooled Volkswagen vehicles. If the car brand is not clearly stated or clearly implied from title or transcript, assume it is not VW.
3. If the video qualifies, classify it accordingly using the format below.
4. If the video does not qualify, return the rejection format exactly.

Allowed "vwTypes": [{vw_types}]
Allowed "categories": [{categories}]
Tags: Max 5. Short (1-3 words), specific, not generic labels.

Respond in **exact JSON format**.

If the video **does not** qualify:
{{ "isHowToVWVideo": false }}

If the video does qualify:
{{
  "isHowToVWVideo": true,
  "vwTypes": ["<SUGGESTED_VW_TYPE_1>", "<SUGGESTED_VW_TYPE_2>"],
  "categories": ["<CATEGORY_1>", "<CATEGORY_2>"],
  "tags": ["<TAG_1>", "<TAG_2>", "<TAG_3>", "<TAG_4>", "<TAG_5>"]
}}

Video Title: "{title}"
Video Transcript: "{transcript}\""""


@dataclass(frozen=True)
class TranscriptClassification:
    is_how_to_vw_video: bool
    categories: list[str] = field(default_factory=list)
    vw_types: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


class OpenAIServiceError(Exception):
    pass


class OpenAIConfigurationError(OpenAIServiceError):
    pass


class OpenAIResponseError(OpenAIServiceError):
    pass


class OpenAIClassifier:
    """Classifies transcripts as vintage-VW how-to content with a JSON-mode chat completion."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-3.5-turbo",
        client_factory: OpenAIClientFactory | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client_factory = client_factory or _build_openai_client
        self._client: Any | None = None

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    def classify_transcript(
        self,
        transcript: str,
        *,
        category_names: list[str],
        vw_type_names: list[str],
        title: str,
    ) -> TranscriptClassification:
        if self._api_key is None:
            LOGGER.error("openai classify skipped reason=missing_api_key")
            raise OpenAIConfigurationError("OpenAI API key not configured on the server.")
        if not transcript.strip():
            raise OpenAIServiceError("Transcript is empty or not provided.")

        if self._client is None:
            self._client = self._client_factory(self._api_key)

        prompt = build_classification_prompt(
            transcript=transcript,
            category_names=category_names,
            vw_type_names=vw_type_names,
            title=title,
        )
        try:
            completion = self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
        except APIError as exc:
            LOGGER.warning("openai classify api_error title=%s", title, exc_info=True)
            parts = [str(getattr(exc, "status_code", "") or ""), type(exc).__name__, exc.message]
            raise OpenAIServiceError(
                "OpenAI API Error: " + " ".join(part for part in parts if part)
            ) from exc
        except OpenAIError as exc:
            LOGGER.warning("openai classify failed title=%s", title, exc_info=True)
            raise OpenAIServiceError(
                "An unexpected error occurred with the OpenAI API."
            ) from exc

        content = _first_message_content(completion)
        if content is None:
            raise OpenAIResponseError("No content in OpenAI response.")
        classification = parse_classification(content)
        LOGGER.info(
            "openai classify done title=%s is_how_to=%s categories=%s vw_types=%s tags=%s",
            title,
            classification.is_how_to_vw_video,
            len(classification.categories),
            len(classification.vw_types),
            len(classification.tags),
        )
        return classification


def build_classification_prompt(
    *,
    transcript: str,
    category_names: list[str],
    vw_type_names: list[str],
    title: str,
) -> str:
    return _PROMPT_TEMPLATE.format(
        vw_types=", ".join(vw_type_names),
        categories=", ".join(category_names),
        title=title,
        transcript=transcript,
    )


def parse_classification(content: str) -> TranscriptClassification:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise OpenAIResponseError("Failed to parse JSON response from OpenAI.") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("isHowToVWVideo"), bool):
        raise OpenAIResponseError(
            "Invalid JSON response structure from OpenAI (missing isHowToVWVideo)."
        )
    return TranscriptClassification(
        is_how_to_vw_video=payload["isHowToVWVideo"],
        categories=_string_list(payload.get("categories")),
        vw_types=_string_list(payload.get("vwTypes")),
        tags=_string_list(payload.get("tags"))[:MAX_SUGGESTED_TAGS],
    )


def _build_openai_client(api_key: str) -> Any:
    return OpenAI(api_key=api_key)


def _first_message_content(completion: Any) -> str | None:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, str) and content.strip():
        return content
    return None


def _string_list(raw_value: object) -> list[str]:
    if not isinstance(raw_value, list):
        return []
    return [item.strip() for item in raw_value if isinstance(item, str) and item.strip()]
