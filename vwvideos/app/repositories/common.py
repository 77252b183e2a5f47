from __future__ import annotations

import sqlite3
from datetime import UTC, datetime

_UNIQUE_PREFIX = "UNIQUE constraint failed:"


class CatalogRepositoryError(Exception):
    pass


class RecordNotFoundError(CatalogRepositoryError):
    pass


class RecordInUseError(CatalogRepositoryError):
    """Raised when a delete is refused because other rows still reference the record."""


class DuplicateRecordError(CatalogRepositoryError):
    def __init__(self, table: str, fields: tuple[str, ...]) -> None:
        self.table = table
        self.fields = fields
        super().__init__(f"duplicate {table} record on {', '.join(fields)}")

    @property
    def field(self) -> str:
        return self.fields[-1] if self.fields else ""


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def translate_integrity_error(exc: sqlite3.IntegrityError) -> CatalogRepositoryError:
    message = str(exc)
    if message.startswith(_UNIQUE_PREFIX):
        qualified = [part.strip() for part in message[len(_UNIQUE_PREFIX):].split(",")]
        table = qualified[0].split(".", 1)[0] if qualified else ""
        fields = tuple(part.split(".", 1)[-1] for part in qualified if part)
        return DuplicateRecordError(table, fields)
    if "FOREIGN KEY constraint failed" in message:
        return RecordInUseError(message)
    return CatalogRepositoryError(message)


def text_or_none(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))
