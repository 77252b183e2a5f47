from __future__ import annotations

import html
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from importlib import import_module
from typing import Any, cast

from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled, YouTubeTranscriptApi

LOGGER = logging.getLogger("howto_vw.youtube")

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
TRANSCRIPTS_DISABLED_MESSAGE = "Transcripts are disabled for this video."
NO_TRANSCRIPTS_MESSAGE = "No transcripts are available for this video."
EMPTY_TRANSCRIPT_MESSAGE = "No transcript found or it is empty."

YouTubeClientFactory = Callable[[str], Any]
TranscriptFetcher = Callable[[str], list[str]]


@dataclass(frozen=True)
class YouTubeSearchItem:
    video_id: str
    title: str
    description: str
    thumbnail_url: str | None
    channel_title: str
    channel_id: str | None
    published_at: str | None

    @property
    def url(self) -> str:
        return YOUTUBE_WATCH_URL.format(video_id=self.video_id)


@dataclass(frozen=True)
class YouTubeVideoDetails:
    video_id: str
    title: str
    description: str | None
    thumbnail_url: str | None
    channel_title: str | None
    channel_id: str | None
    published_at: str | None

    @property
    def channel_url(self) -> str | None:
        if self.channel_id is None:
            return None
        return YOUTUBE_CHANNEL_URL.format(channel_id=self.channel_id)


@dataclass(frozen=True)
class VideoPublicationStatus:
    video_id: str
    found: bool
    privacy_status: str | None = None
    upload_status: str | None = None

    @property
    def is_available(self) -> bool:
        return self.found and self.privacy_status == "public" and self.upload_status == "processed"


class YouTubeServiceError(Exception):
    pass


class YouTubeConfigurationError(YouTubeServiceError):
    pass


class YouTubeQuotaExceededError(YouTubeServiceError):
    pass


class TranscriptUnavailableError(YouTubeServiceError):
    pass


class YouTubeService:
    def __init__(
        self,
        api_key: str | None,
        *,
        client_factory: YouTubeClientFactory | None = None,
        transcript_fetcher: TranscriptFetcher | None = None,
        transcript_max_attempts: int = 3,
        transcript_retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_key = api_key
        self._client_factory = client_factory or _build_youtube_client
        self._transcript_fetcher = transcript_fetcher or _fetch_transcript_lines
        self._transcript_max_attempts = max(1, transcript_max_attempts)
        self._transcript_retry_delay_seconds = max(0.0, transcript_retry_delay_seconds)
        self._sleep = sleep
        self._client: Any | None = None

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    def _data_api(self) -> Any:
        if self._api_key is None:
            raise YouTubeConfigurationError(
                "YouTube API key is not configured. Please check server configuration."
            )
        if self._client is None:
            self._client = self._client_factory(self._api_key)
        return self._client

    def search_videos(self, query: str, *, max_results: int = 10) -> list[YouTubeSearchItem]:
        client = self._data_api()
        normalized_query = query.strip()
        if not normalized_query:
            raise YouTubeServiceError("Search query cannot be empty.")

        LOGGER.info(
            "youtube search start query=%s max_results=%s",
            normalized_query,
            max_results,
        )
        response = _execute(
            client.search().list(
                q=normalized_query,
                part="snippet",
                type="video",
                maxResults=max_results,
            ),
            operation="search.list",
        )

        results: list[YouTubeSearchItem] = []
        for raw_item in _as_list(response.get("items")):
            item = _as_dict(raw_item)
            video_id = _coerce_nonempty_string(_as_dict(item.get("id")).get("videoId"))
            if video_id is None:
                continue
            snippet = _as_dict(item.get("snippet"))
            results.append(
                YouTubeSearchItem(
                    video_id=video_id,
                    title=_decode_entities(snippet.get("title")),
                    description=_decode_entities(snippet.get("description")),
                    thumbnail_url=_pick_thumbnail_url(snippet),
                    channel_title=_decode_entities(snippet.get("channelTitle")),
                    channel_id=_coerce_nonempty_string(snippet.get("channelId")),
                    published_at=_coerce_nonempty_string(snippet.get("publishedAt")),
                )
            )
        LOGGER.info("youtube search done query=%s results=%s", normalized_query, len(results))
        return results

    def get_video_details(self, video_id: str) -> YouTubeVideoDetails | None:
        client = self._data_api()
        response = _execute(
            client.videos().list(part="snippet", id=video_id, maxResults=1),
            operation="videos.list",
        )
        items = _as_list(response.get("items"))
        if not items:
            return None

        snippet = _as_dict(_as_dict(items[0]).get("snippet"))
        description = _decode_entities(snippet.get("description")).strip()
        return YouTubeVideoDetails(
            video_id=video_id,
            title=_decode_entities(snippet.get("title")).strip() or video_id,
            description=description or None,
            thumbnail_url=_pick_thumbnail_url(snippet),
            channel_title=_decode_entities(snippet.get("channelTitle")).strip() or None,
            channel_id=_coerce_nonempty_string(snippet.get("channelId")),
            published_at=_coerce_nonempty_string(snippet.get("publishedAt")),
        )

    def get_publication_statuses(self, video_ids: list[str]) -> list[VideoPublicationStatus]:
        """One `videos.list(part=status)` call; ids absent from the response are not found."""
        if not video_ids:
            return []
        client = self._data_api()
        response = _execute(
            client.videos().list(part="status", id=",".join(video_ids), maxResults=len(video_ids)),
            operation="videos.list",
        )
        returned: dict[str, dict[str, Any]] = {}
        for raw_item in _as_list(response.get("items")):
            item = _as_dict(raw_item)
            item_id = _coerce_nonempty_string(item.get("id"))
            if item_id is not None:
                returned[item_id] = _as_dict(item.get("status"))

        statuses: list[VideoPublicationStatus] = []
        for video_id in video_ids:
            status = returned.get(video_id)
            if status is None:
                statuses.append(VideoPublicationStatus(video_id=video_id, found=False))
                continue
            statuses.append(
                VideoPublicationStatus(
                    video_id=video_id,
                    found=True,
                    privacy_status=_coerce_nonempty_string(status.get("privacyStatus")),
                    upload_status=_coerce_nonempty_string(status.get("uploadStatus")),
                )
            )
        return statuses

    def get_transcript(self, video_id: str) -> str:
        normalized_id = video_id.strip()
        if not normalized_id:
            raise TranscriptUnavailableError("Video ID is required.")

        last_error: Exception | None = None
        for attempt in range(1, self._transcript_max_attempts + 1):
            try:
                lines = self._transcript_fetcher(normalized_id)
            except (TranscriptsDisabled, NoTranscriptFound) as exc:
                raise TranscriptUnavailableError(_transcript_error_message(exc)) from exc
            except Exception as exc:
                message = _transcript_error_message(exc)
                if message != "Failed to fetch transcript.":
                    raise TranscriptUnavailableError(message) from exc
                last_error = exc
                LOGGER.info(
                    "youtube transcript attempt_failed video_id=%s attempt=%s max_attempts=%s "
                    "error=%s",
                    normalized_id,
                    attempt,
                    self._transcript_max_attempts,
                    _summarize_exception_message(exc),
                )
                if attempt < self._transcript_max_attempts and self._transcript_retry_delay_seconds:
                    self._sleep(self._transcript_retry_delay_seconds)
                continue

            transcript = html.unescape(" ".join(line for line in lines if line)).strip()
            if not transcript:
                raise TranscriptUnavailableError(EMPTY_TRANSCRIPT_MESSAGE)
            LOGGER.info(
                "youtube transcript fetched video_id=%s attempt=%s chars=%s",
                normalized_id,
                attempt,
                len(transcript),
            )
            return transcript

        LOGGER.warning(
            "youtube transcript exhausted video_id=%s attempts=%s",
            normalized_id,
            self._transcript_max_attempts,
        )
        raise TranscriptUnavailableError("Failed to fetch transcript.") from last_error


def _build_youtube_client(api_key: str) -> Any:
    try:
        discovery_module = import_module("googleapiclient.discovery")
    except ImportError as exc:  # pragma: no cover - dependency controlled at runtime
        raise YouTubeServiceError(
            "YouTube Data API access requires the google-api-python-client dependency"
        ) from exc

    build_fn: Any = discovery_module.build
    return build_fn("youtube", "v3", developerKey=api_key, cache_discovery=False)


def _fetch_transcript_lines(video_id: str) -> list[str]:
    fetched = YouTubeTranscriptApi().fetch(video_id)
    return [snippet.text for snippet in fetched]


def _execute(request: Any, *, operation: str) -> dict[str, Any]:
    try:
        return _as_dict(request.execute())
    except Exception as exc:
        message = _summarize_exception_message(exc)
        if _is_youtube_data_api_rate_limit_error(exc):
            LOGGER.warning("youtube data_api quota_exceeded operation=%s", operation)
            raise YouTubeQuotaExceededError(message) from exc
        LOGGER.warning("youtube data_api failed operation=%s error=%s", operation, message)
        raise YouTubeServiceError(message) from exc


def _transcript_error_message(exc: Exception) -> str:
    if isinstance(exc, TranscriptsDisabled):
        return TRANSCRIPTS_DISABLED_MESSAGE
    if isinstance(exc, NoTranscriptFound):
        return NO_TRANSCRIPTS_MESSAGE
    message = str(exc).lower()
    if "disabled transcripts" in message or "subtitles are disabled" in message:
        return TRANSCRIPTS_DISABLED_MESSAGE
    if "no transcripts are available" in message or "no transcripts were found" in message:
        return NO_TRANSCRIPTS_MESSAGE
    return "Failed to fetch transcript."


def _decode_entities(raw_value: object) -> str:
    if not isinstance(raw_value, str):
        return ""
    return html.unescape(raw_value)


def _pick_thumbnail_url(snippet: dict[str, Any]) -> str | None:
    thumbnails = _as_dict(snippet.get("thumbnails"))
    for quality in ("high", "medium", "default"):
        url_value = _as_dict(thumbnails.get(quality)).get("url")
        if isinstance(url_value, str) and url_value.strip():
            return url_value
    return None


def _coerce_nonempty_string(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value
    return None


def _is_youtube_data_api_rate_limit_error(exc: Exception) -> bool:
    class_name = exc.__class__.__name__.lower()
    message = str(exc).lower()
    if "rate" in class_name and "limit" in class_name:
        return True

    markers = (
        "quotaexceeded",
        "dailylimitexceeded",
        "ratelimitexceeded",
        "quota exceeded",
        "exceeded your quota",
        "http error 429",
        "status code 429",
    )
    return any(marker in message for marker in markers)


def _summarize_exception_message(exc: Exception, *, max_length: int = 400) -> str:
    raw = str(exc).strip()
    if not raw:
        raw = repr(exc)
    if len(raw) <= max_length:
        return raw
    return f"{raw[: max_length - 3]}..."


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        return {key: item for key, item in raw_dict.items() if isinstance(key, str)}
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return list(cast(list[Any], value))
    return []
