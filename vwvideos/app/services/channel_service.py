from __future__ import annotations

import logging
from typing import Any

from vwvideos.app.models.catalog_contracts import ActionResponse, ChannelForm
from vwvideos.app.repositories.channel_repository import (
    ChannelFields,
    ChannelRecord,
    ChannelRepository,
)
from vwvideos.app.repositories.common import DuplicateRecordError, RecordNotFoundError
from vwvideos.app.services.action_results import (
    duplicate_field_response,
    failed,
    parse_form,
    succeeded,
)

LOGGER = logging.getLogger("howto_vw.channels")

_DUPLICATE_MESSAGES = {
    "platform_channel_id": "A channel with this platform channel ID already exists.",
    "slug": "A channel with this slug already exists.",
}


class ChannelService:
    def __init__(self, repository: ChannelRepository) -> None:
        self._repository = repository

    def get_channels(self) -> list[ChannelRecord]:
        return self._repository.list_channels()

    def get_channel_by_id(self, channel_id: int) -> ActionResponse:
        record = self._repository.get_channel(channel_id)
        if record is None:
            return failed("Channel not found.")
        return succeeded(data=record)

    def get_channel_by_slug(self, slug: str) -> ChannelRecord | None:
        return self._repository.get_by_slug(slug)

    def fetch_navigation_channels(self, *, limit: int = 20) -> list[ChannelRecord]:
        return self._repository.list_navigation_channels(limit=limit)

    def add_channel(self, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(ChannelForm, payload)
        if isinstance(form, ActionResponse):
            return form
        try:
            record = self._repository.create_channel(_fields_from_form(form))
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc, _DUPLICATE_MESSAGES, fallback="Failed to add channel."
            )
        LOGGER.info(
            "channel added channel_id=%s platform_channel_id=%s",
            record.channel_id,
            record.platform_channel_id,
        )
        return succeeded("Channel added successfully!", data=record)

    def update_channel(self, channel_id: int, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(ChannelForm, payload)
        if isinstance(form, ActionResponse):
            return form
        try:
            record = self._repository.update_channel(channel_id, _fields_from_form(form))
        except RecordNotFoundError:
            return failed("Channel not found.")
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc, _DUPLICATE_MESSAGES, fallback="Failed to update channel."
            )
        LOGGER.info("channel updated channel_id=%s", channel_id)
        return succeeded("Channel updated successfully!", data=record)

    def delete_channel(self, channel_id: int) -> ActionResponse:
        try:
            self._repository.delete_channel(channel_id)
        except RecordNotFoundError:
            return failed("Channel not found, it may have already been deleted.")
        LOGGER.info("channel deleted channel_id=%s", channel_id)
        return succeeded("Channel deleted successfully.")

    def bulk_delete_channels(self, ids: list[int]) -> ActionResponse:
        if not ids:
            return failed("No channel IDs provided for deletion.")
        deleted = self._repository.delete_channels(ids)
        return succeeded(f"{deleted} channel(s) deleted successfully.", count=deleted)


def _fields_from_form(form: ChannelForm) -> ChannelFields:
    return ChannelFields(
        name=form.name,
        platform=form.platform,
        platform_channel_id=form.platform_channel_id,
        url=form.url,
        thumbnail_url=form.thumbnail_url,
        subscriber_count=form.subscriber_count,
        video_count=form.video_count,
        description=form.description,
    )
