from __future__ import annotations

import logging
from typing import Any

from vwvideos.app.models.catalog_contracts import ActionResponse, TagForm
from vwvideos.app.repositories.common import DuplicateRecordError, RecordNotFoundError
from vwvideos.app.repositories.tag_repository import TagRecord, TagRepository
from vwvideos.app.services.action_results import (
    bulk_generate_slugs,
    duplicate_field_response,
    failed,
    name_taken_response,
    parse_form,
    succeeded,
)
from vwvideos.app.slugs import make_slug

LOGGER = logging.getLogger("howto_vw.tags")

_INVALID_MESSAGE = "Validation failed. Please check your input."
_DUPLICATE_MESSAGES = {
    "name": "A tag with this name already exists.",
    "slug": "A tag with this slug already exists.",
}


class TagService:
    def __init__(self, repository: TagRepository) -> None:
        self._repository = repository

    def fetch_tags_for_table(self) -> list[TagRecord]:
        return self._repository.list_tags()

    def fetch_navigation_tags(self, *, limit: int = 20) -> list[TagRecord]:
        return self._repository.list_navigation_tags(limit=limit)

    def get_tag_by_slug(self, slug: str) -> TagRecord | None:
        return self._repository.get_by_slug(slug)

    def add_tag(self, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(TagForm, payload, invalid_message=_INVALID_MESSAGE)
        if isinstance(form, ActionResponse):
            return form
        if self._repository.get_by_name(form.name) is not None:
            return name_taken_response(_DUPLICATE_MESSAGES)
        slug = form.slug or make_slug(form.name, max_length=120)
        if not slug:
            return failed(
                _INVALID_MESSAGE,
                errors={"slug": ["Slug could not be generated from the name."]},
            )
        try:
            record = self._repository.create_tag(
                name=form.name,
                slug=slug,
                description=form.description,
            )
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc,
                _DUPLICATE_MESSAGES,
                fallback="Failed to add tag due to an unexpected error.",
            )
        LOGGER.info("tag added tag_id=%s slug=%s", record.tag_id, record.slug)
        return succeeded("Tag added successfully!", data=record)

    def update_tag(self, tag_id: int, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(TagForm, payload, invalid_message=_INVALID_MESSAGE)
        if isinstance(form, ActionResponse):
            return form
        slug = form.slug or make_slug(form.name, max_length=120)
        if not slug:
            return failed(
                _INVALID_MESSAGE,
                errors={"slug": ["Slug could not be generated from the name."]},
            )
        name_owner = self._repository.get_by_name(form.name)
        if name_owner is not None and name_owner.tag_id != tag_id:
            return name_taken_response(_DUPLICATE_MESSAGES)
        try:
            record = self._repository.update_tag(
                tag_id,
                name=form.name,
                slug=slug,
                description=form.description,
            )
        except RecordNotFoundError:
            return failed("Tag not found.")
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc,
                _DUPLICATE_MESSAGES,
                fallback="Failed to update tag due to an unexpected error.",
            )
        LOGGER.info("tag updated tag_id=%s", tag_id)
        return succeeded("Tag updated successfully!", data=record)

    def delete_tag(self, tag_id: int) -> ActionResponse:
        try:
            self._repository.delete_tag(tag_id)
        except RecordNotFoundError:
            return failed("Tag not found, it may have already been deleted.")
        LOGGER.info("tag deleted tag_id=%s", tag_id)
        return succeeded("Tag deleted successfully.")

    def bulk_delete_tags(self, ids: list[int]) -> ActionResponse:
        if not ids:
            return failed("No tag IDs provided for deletion.", error="No IDs provided.")
        deleted = self._repository.delete_tags(ids)
        return succeeded(f"{deleted} tag(s) deleted successfully.", count=deleted)

    def bulk_generate_slugs(self, ids: list[int]) -> ActionResponse:
        def load(tag_id: int) -> tuple[str, str | None] | None:
            record = self._repository.get_tag(tag_id)
            return None if record is None else (record.name, record.slug)

        def owner(slug: str) -> tuple[int, str] | None:
            record = self._repository.get_by_slug(slug)
            return None if record is None else (record.tag_id, record.name)

        return bulk_generate_slugs(
            ids,
            label="tag",
            load_name_and_slug=load,
            find_slug_owner=owner,
            store_slug=self._repository.set_slug,
        )
