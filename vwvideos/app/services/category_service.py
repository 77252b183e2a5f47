from __future__ import annotations

import logging
from typing import Any

from vwvideos.app.models.catalog_contracts import ActionResponse, CategoryForm
from vwvideos.app.repositories.category_repository import CategoryRecord, CategoryRepository
from vwvideos.app.repositories.common import (
    DuplicateRecordError,
    RecordInUseError,
    RecordNotFoundError,
)
from vwvideos.app.services.action_results import (
    bulk_generate_slugs,
    duplicate_field_response,
    failed,
    name_taken_response,
    parse_form,
    succeeded,
)
from vwvideos.app.slugs import make_slug

LOGGER = logging.getLogger("howto_vw.categories")

UNCATEGORIZED_CATEGORY_NAME = "Uncategorized"
UNCATEGORIZED_CATEGORY_DESCRIPTION = "Videos that could not be automatically categorized."

_DUPLICATE_MESSAGES = {
    "name": "A category with this name already exists.",
    "slug": "A category with this slug already exists.",
}
_NOT_FOUND_MESSAGE = "Category not found. It may have been deleted."
_IN_USE_MESSAGE = (
    "Cannot delete category. It is still associated with one or more videos. "
    "Please remove these associations first."
)


class CategoryService:
    def __init__(self, repository: CategoryRepository) -> None:
        self._repository = repository

    def fetch_all_categories(self) -> list[CategoryRecord]:
        return self._repository.list_categories(order="sort_order")

    def fetch_categories_by_id(self) -> list[CategoryRecord]:
        return self._repository.list_categories(order="id")

    def fetch_public_categories(self) -> list[CategoryRecord]:
        return self._repository.list_categories(
            order="name",
            exclude_names=(UNCATEGORIZED_CATEGORY_NAME,),
        )

    def get_category_by_slug(self, slug: str) -> CategoryRecord | None:
        return self._repository.get_by_slug(slug)

    def add_category(self, payload: dict[str, Any]) -> ActionResponse:
        form = parse_form(CategoryForm, payload)
        if isinstance(form, ActionResponse):
            return form
        if self._repository.find_by_name(form.name) is not None:
            return name_taken_response(_DUPLICATE_MESSAGES)
        try:
            record = self._repository.create_category(
                name=form.name,
                slug=form.slug or make_slug(form.name) or None,
                description=form.description,
                sort_order=form.sort_order or 0,
            )
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc, _DUPLICATE_MESSAGES, fallback="Failed to add category."
            )
        LOGGER.info("category added category_id=%s name=%s", record.category_id, record.name)
        return succeeded("Category added successfully!", data=record)

    def update_category(self, category_id: int, payload: dict[str, Any]) -> ActionResponse:
        if category_id <= 0:
            return failed("Category ID is required.")
        form = parse_form(CategoryForm, payload)
        if isinstance(form, ActionResponse):
            return form
        name_owner = self._repository.find_by_name(form.name)
        if name_owner is not None and name_owner.category_id != category_id:
            return name_taken_response(_DUPLICATE_MESSAGES)
        try:
            record = self._repository.update_category(
                category_id,
                name=form.name,
                slug=form.slug or make_slug(form.name) or None,
                description=form.description,
                sort_order=form.sort_order,
            )
        except RecordNotFoundError:
            return failed(_NOT_FOUND_MESSAGE)
        except DuplicateRecordError as exc:
            return duplicate_field_response(
                exc, _DUPLICATE_MESSAGES, fallback="Failed to update category."
            )
        LOGGER.info("category updated category_id=%s", category_id)
        return succeeded("Category updated successfully!", data=record)

    def delete_category(self, category_id: int) -> ActionResponse:
        if category_id <= 0:
            return failed("Category ID is required.")
        try:
            self._repository.delete_category(category_id)
        except RecordNotFoundError:
            return failed(_NOT_FOUND_MESSAGE)
        except RecordInUseError:
            return failed(_IN_USE_MESSAGE)
        LOGGER.info("category deleted category_id=%s", category_id)
        return succeeded("Category deleted successfully!")

    def bulk_delete_categories(self, ids: list[int]) -> ActionResponse:
        if not ids:
            return failed("No category IDs provided for deletion.")
        try:
            deleted = self._repository.delete_categories(ids)
        except RecordInUseError:
            return failed(_IN_USE_MESSAGE)
        return succeeded(f"{deleted} category(ies) deleted successfully.", count=deleted)

    def bulk_generate_slugs(self, ids: list[int]) -> ActionResponse:
        def load(category_id: int) -> tuple[str, str | None] | None:
            record = self._repository.get_category(category_id)
            return None if record is None else (record.name, record.slug)

        def owner(slug: str) -> tuple[int, str] | None:
            record = self._repository.get_by_slug(slug)
            return None if record is None else (record.category_id, record.name)

        return bulk_generate_slugs(
            ids,
            label="Category",
            load_name_and_slug=load,
            find_slug_owner=owner,
            store_slug=self._repository.set_slug,
        )

    def ensure_category(self, name: str, *, description: str | None = None) -> CategoryRecord:
        """Find a category by name (case-insensitive) or create it."""
        normalized = name.strip()
        existing = self._repository.find_by_name(normalized)
        if existing is not None:
            return existing
        try:
            return self._repository.create_category(
                name=normalized,
                slug=self._free_slug(normalized),
                description=description,
            )
        except DuplicateRecordError:
            # Created concurrently between the lookup and the insert.
            existing = self._repository.find_by_name(normalized)
            if existing is None:
                raise
            return existing

    def _free_slug(self, name: str) -> str | None:
        base_slug = make_slug(name)
        if not base_slug:
            return None
        candidate = base_slug
        attempt = 2
        while self._repository.get_by_slug(candidate) is not None:
            candidate = f"{base_slug}-{attempt}"
            attempt += 1
        return candidate
