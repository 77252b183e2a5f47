from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any


class FakeYouTubeApi:
    """Stands in for the googleapiclient resource returned by `build("youtube", "v3")`."""

    def __init__(self) -> None:
        self.search_items: list[dict[str, Any]] = []
        self.videos_by_id: dict[str, dict[str, Any]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def search(self) -> _FakeResource:
        return _FakeResource(self, "search.list")

    def videos(self) -> _FakeResource:
        return _FakeResource(self, "videos.list")

    def add_search_result(
        self,
        video_id: str,
        title: str,
        *,
        channel_title: str = "Air-Cooled Garage",
        channel_id: str | None = "UC_aircooled",
    ) -> None:
        self.search_items.append(
            {
                "id": {"videoId": video_id},
                "snippet": {
                    "title": title,
                    "description": f"Description for {title}",
                    "channelTitle": channel_title,
                    "channelId": channel_id,
                    "publishedAt": "2024-03-01T12:00:00Z",
                    "thumbnails": {
                        "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                        "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
                    },
                },
            }
        )

    def respond(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((operation, params))
        error = self.errors.get(operation)
        if error is not None:
            raise error
        if operation == "search.list":
            return {"items": list(self.search_items)}
        ids = str(params.get("id", "")).split(",")
        return {
            "items": [
                {"id": video_id, **self.videos_by_id[video_id]}
                for video_id in ids
                if video_id in self.videos_by_id
            ]
        }


class _FakeResource:
    def __init__(self, api: FakeYouTubeApi, operation: str) -> None:
        self._api = api
        self._operation = operation

    def list(self, **params: Any) -> _FakeRequest:
        return _FakeRequest(self._api, self._operation, params)


class _FakeRequest:
    def __init__(self, api: FakeYouTubeApi, operation: str, params: dict[str, Any]) -> None:
        self._api = api
        self._operation = operation
        self._params = params

    def execute(self) -> dict[str, Any]:
        return self._api.respond(self._operation, self._params)


class FakeTranscripts:
    def __init__(self) -> None:
        self.lines_by_video: dict[str, list[str]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    def __call__(self, video_id: str) -> list[str]:
        self.calls.append(video_id)
        error = self.errors.get(video_id)
        if error is not None:
            raise error
        return self.lines_by_video.get(video_id, [])


class FakeOpenAI:
    """Mimics `client.chat.completions.create` and answers with canned JSON per video title."""

    def __init__(self) -> None:
        self.default_payload: dict[str, Any] = {"isHowToVWVideo": False}
        self.payloads_by_title: dict[str, dict[str, Any]] = {}
        self.prompts: list[str] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> Any:
        prompt = kwargs["messages"][0]["content"]
        self.prompts.append(prompt)
        payload = self.default_payload
        for title, candidate in self.payloads_by_title.items():
            if f'Video Title: "{title}"' in prompt:
                payload = candidate
                break
        message = SimpleNamespace(content=json.dumps(payload))
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])
