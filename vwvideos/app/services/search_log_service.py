from __future__ import annotations

import ipaddress
import logging
import sqlite3
from dataclasses import dataclass
from typing import Literal

from vwvideos.app.repositories.common import CatalogRepositoryError
from vwvideos.app.repositories.search_log_repository import (
    SearchLogRecord,
    SearchLogRepository,
    SearchLogSortColumn,
)

LOGGER = logging.getLogger("howto_vw.search_logs")

MISSING_IP_LABEL = "N/A"
_SORT_COLUMNS: dict[str, SearchLogSortColumn] = {
    "term": "term",
    "partialIpAddress": "partial_ip_address",
    "partial_ip_address": "partial_ip_address",
    "resultsCount": "results_count",
    "results_count": "results_count",
    "createdAt": "created_at",
    "created_at": "created_at",
}


@dataclass(frozen=True)
class SearchLogRow:
    log_id: int
    term: str
    partial_ip_address: str
    results_count: int | None
    created_at: str


@dataclass(frozen=True)
class SearchLogPage:
    logs: list[SearchLogRow]
    total_count: int
    total_pages: int
    page: int
    page_size: int


def client_ip_from_headers(forwarded_for: str | None, remote_addr: str | None) -> str | None:
    """Pick the originating client address, preferring the first forwarded hop."""
    if forwarded_for:
        first_hop = forwarded_for.split(",", 1)[0].strip()
        if first_hop:
            return first_hop
    return remote_addr or None


def anonymize_ip(ip_address: str | None) -> str | None:
    if not ip_address:
        return None
    if ip_address == "::1":
        return "localhost"
    try:
        parsed = ipaddress.ip_address(ip_address)
    except ValueError:
        return None
    if not isinstance(parsed, ipaddress.IPv4Address):
        return None
    octets = str(parsed).split(".")
    return ".".join([*octets[:3], "0"])


class SearchLogService:
    def __init__(self, repository: SearchLogRepository) -> None:
        self._repository = repository

    def log_search(
        self,
        term: str,
        *,
        results_count: int | None,
        forwarded_for: str | None = None,
        remote_addr: str | None = None,
    ) -> SearchLogRecord | None:
        normalized = term.strip()
        if not normalized:
            return None
        partial_ip = anonymize_ip(client_ip_from_headers(forwarded_for, remote_addr))
        try:
            return self._repository.record_search(
                term=normalized,
                partial_ip_address=partial_ip,
                results_count=results_count,
            )
        except (CatalogRepositoryError, sqlite3.Error):
            LOGGER.exception("search log write failed term_length=%s", len(normalized))
            return None

    def fetch_search_logs(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        sort_by: str = "createdAt",
        sort_direction: Literal["asc", "desc"] = "desc",
    ) -> SearchLogPage:
        sort_column = _SORT_COLUMNS.get(sort_by)
        if sort_column is None:
            raise ValueError(f"unsupported search log sort column: {sort_by}")
        current_page = max(1, page)
        size = max(1, page_size)
        records, total = self._repository.list_search_logs(
            limit=size,
            offset=(current_page - 1) * size,
            sort_column=sort_column,
            descending=sort_direction == "desc",
        )
        rows = [
            SearchLogRow(
                log_id=record.log_id,
                term=record.term,
                partial_ip_address=record.partial_ip_address or MISSING_IP_LABEL,
                results_count=record.results_count,
                created_at=record.created_at,
            )
            for record in records
        ]
        return SearchLogPage(
            logs=rows,
            total_count=total,
            total_pages=-(-total // size),
            page=current_page,
            page_size=size,
        )
