from __future__ import annotations

import logging
from typing import Any

from vwvideos.app.models.catalog_contracts import ActionResponse, VWTypeForm, VWTypeUpdateForm
from vwvideos.app.repositories.common import (
    DuplicateRecordError,
    RecordInUseError,
    RecordNotFoundError,
)
from vwvideos.app.repositories.vw_type_repository import VWTypeRecord, VWTypeRepository
from vwvideos.app.services.action_results import (
    bulk_generate_slugs,
    duplicate_field_response,
    failed,
    parse_form,
    succeeded,
)
from vwvideos.app.slugs import make_slug

LOGGER = logging.getLogger("howto_vw.vw_types")

_DUPLICATE_MESSAGES = {
    "slug": "Slug already exists. Please choose a unique slug.",
    "name": "Name already exists. Please choose a unique name.",
}


class VWTypeService:
    def __init__(self, repository: VWTypeRepository) -> None:
        self._repository = repository

    def fetch_vw_types_for_table(self) -> ActionResponse:
        return succeeded("VW Types fetched successfully.", data=self._repository.list_vw_types())

    def fetch_navigation_vw_types(self) -> list[VWTypeRecord]:
        return self._repository.list_vw_types(include_all_type=False)

    def get_vw_type_by_slug(self, slug: str) -> VWTypeRecord | None:
        return self._repository.get_by_slug(slug)

    def fetch_vw_type_by_id(self, vw_type_id: int) -> ActionResponse:
        if vw_type_id <= 0:
            return failed("Invalid VWType ID provided.")
        record = self._repository.get_vw_type(vw_type_id)
        if record is None:
            return failed("VWType not found.")
        return succeeded("VWType fetched successfully.", data=record)

    def add_vw_type(self, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(VWTypeForm, payload)
        if isinstance(form, ActionResponse):
            return form
        slug = make_slug(form.slug) if form.slug else make_slug(form.name)
        if not slug:
            return failed("Invalid data provided.", errors={"slug": ["Slug must not be empty."]})
        try:
            record = self._repository.create_vw_type(
                name=form.name,
                slug=slug,
                description=form.description,
                sort_order=form.sort_order,
            )
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc, _DUPLICATE_MESSAGES, fallback="Failed to add VWType."
            )
        LOGGER.info("vw_type added vw_type_id=%s slug=%s", record.vw_type_id, record.slug)
        return succeeded(f'VWType "{record.name}" added successfully.', data=record)

    def update_vw_type(self, vw_type_id: int, payload: dict[str, Any]) -> ActionResponse:
        if vw_type_id <= 0:
            return failed("Invalid VWType ID for update.")
        form = parse_form(VWTypeUpdateForm, payload, invalid_message="Invalid data for update.")
        if isinstance(form, ActionResponse):
            return form

        provided = form.model_fields_set
        changes: dict[str, Any] = {}
        if "name" in provided and form.name is not None:
            changes["name"] = form.name
        if "description" in provided:
            changes["description"] = form.description
        if "sort_order" in provided and form.sort_order is not None:
            changes["sort_order"] = form.sort_order
        if "slug" in provided and form.slug:
            changes["slug"] = make_slug(form.slug)
        elif "name" in changes:
            changes["slug"] = make_slug(changes["name"])

        if not changes:
            return succeeded("No changes detected to update.")
        try:
            record = self._repository.update_vw_type(vw_type_id, changes)
        except RecordNotFoundError:
            return failed("VWType not found.")
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc,
                _DUPLICATE_MESSAGES,
                fallback=f"Failed to update VWType with ID {vw_type_id}.",
            )
        LOGGER.info("vw_type updated vw_type_id=%s columns=%s", vw_type_id, sorted(changes))
        return succeeded(f'VWType "{record.name}" updated successfully.', data=record)

    def delete_vw_type(self, vw_type_id: int) -> ActionResponse:
        if vw_type_id <= 0:
            return failed("Invalid VWType ID for deletion.")
        try:
            self._repository.delete_vw_type(vw_type_id)
        except RecordNotFoundError:
            return failed("VWType not found for deletion.")
        except RecordInUseError:
            return failed("Failed to delete VWType because it is still in use by other records.")
        LOGGER.info("vw_type deleted vw_type_id=%s", vw_type_id)
        return succeeded("VWType deleted successfully.")

    def bulk_delete_vw_types(self, ids: list[int]) -> ActionResponse:
        if not ids:
            return failed("No VWType IDs provided for deletion.")
        try:
            deleted = self._repository.delete_vw_types(ids)
        except RecordInUseError as exc:
            return failed("Failed to bulk delete VWTypes.", error=str(exc))
        return succeeded(f"{deleted} VWType(s) deleted successfully.", count=deleted)

    def bulk_generate_slugs(self, ids: list[int]) -> ActionResponse:
        def load(vw_type_id: int) -> tuple[str, str | None] | None:
            record = self._repository.get_vw_type(vw_type_id)
            return None if record is None else (record.name, record.slug)

        def owner(slug: str) -> tuple[int, str] | None:
            record = self._repository.get_by_slug(slug)
            return None if record is None else (record.vw_type_id, record.name)

        def store(vw_type_id: int, slug: str) -> None:
            self._repository.update_vw_type(vw_type_id, {"slug": slug})

        return bulk_generate_slugs(
            ids,
            label="VWType",
            load_name_and_slug=load,
            find_slug_owner=owner,
            store_slug=store,
        )
