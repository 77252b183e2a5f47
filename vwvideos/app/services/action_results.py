from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from vwvideos.app.models.catalog_contracts import ActionResponse, field_errors
from vwvideos.app.repositories.common import DuplicateRecordError
from vwvideos.app.slugs import make_slug

LOGGER = logging.getLogger("howto_vw.actions")

FormT = TypeVar("FormT", bound=BaseModel)


def succeeded(
    message: str | None = None,
    *,
    data: Any = None,
    count: int | None = None,
) -> ActionResponse:
    return ActionResponse(success=True, message=message, data=data, count=count)


def failed(
    message: str,
    *,
    error: str | None = None,
    errors: dict[str, list[str]] | None = None,
) -> ActionResponse:
    return ActionResponse(success=False, message=message, error=error, errors=errors)


def parse_form(
    form_cls: type[FormT],
    payload: dict[str, Any],
    *,
    invalid_message: str = "Invalid data provided.",
) -> FormT | ActionResponse:
    try:
        return form_cls.model_validate(payload)
    except ValidationError as exc:
        return failed(invalid_message, errors=field_errors(exc))


def duplicate_field_response(
    exc: DuplicateRecordError,
    messages: dict[str, str],
    *,
    fallback: str,
) -> ActionResponse:
    """Map a unique-constraint violation to the message registered for the offending column."""
    for column in reversed(exc.fields):
        message = messages.get(column)
        if message is not None:
            return failed(message, errors={column: [message]})
    return failed(fallback, error=str(exc))


def name_taken_response(messages: dict[str, str]) -> ActionResponse:
    message = messages["name"]
    return failed(message, errors={"name": [message]})


def bulk_generate_slugs(
    ids: list[int],
    *,
    label: str,
    load_name_and_slug: Callable[[int], tuple[str, str | None] | None],
    find_slug_owner: Callable[[str], tuple[int, str] | None],
    store_slug: Callable[[int, str], None],
) -> ActionResponse:
    """Regenerate slugs from names one id at a time, collecting per-id errors."""
    if not ids:
        return failed(f"No {label} IDs provided for slug generation.", error="No IDs provided.")

    updated = 0
    errors: list[str] = []
    for record_id in ids:
        loaded = load_name_and_slug(record_id)
        if loaded is None:
            errors.append(f"{label} with ID {record_id} not found.")
            continue
        name, current_slug = loaded
        new_slug = make_slug(name)
        if not new_slug:
            errors.append(f"{label} ID {record_id} has no name, cannot generate slug.")
            continue
        if new_slug == current_slug:
            continue

        owner = find_slug_owner(new_slug)
        if owner is not None and owner[0] != record_id:
            errors.append(
                f"Cannot generate slug for {label} ID {record_id} ('{name}'). "
                f"The new slug '{new_slug}' conflicts with existing {label} "
                f"'{owner[1]}' (ID: {owner[0]})."
            )
            continue
        try:
            store_slug(record_id, new_slug)
        except DuplicateRecordError:
            errors.append(
                f"Could not update slug for {label} ID {record_id} (name: {name}) as the "
                "generated slug conflicts with an existing one."
            )
            continue
        updated += 1

    LOGGER.info(
        "bulk slug generation label=%s requested=%s updated=%s errors=%s",
        label,
        len(ids),
        updated,
        len(errors),
    )
    message = f"Successfully generated/updated slugs for {updated} {label}(s)."
    if errors:
        return ActionResponse(
            success=updated > 0 and len(errors) < len(ids),
            message=f"{message} {len(errors)} error(s) occurred: {'; '.join(errors)}",
            error="; ".join(errors),
            count=updated,
        )
    return succeeded(message, count=updated)
