from __future__ import annotations

import sqlite3

import pytest

from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.search_log_repository import SearchLogRecord, SearchLogRepository
from vwvideos.app.services import search_log_service
from vwvideos.app.services.search_log_service import (
    MISSING_IP_LABEL,
    SearchLogService,
    anonymize_ip,
    client_ip_from_headers,
)


class _CaptureLogger:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def exception(self, message: str, *args: object) -> None:
        self.messages.append(message % args)


class _BrokenRepository(SearchLogRepository):
    def record_search(
        self,
        *,
        term: str,
        partial_ip_address: str | None,
        results_count: int | None,
    ) -> SearchLogRecord:
        raise sqlite3.OperationalError("database is locked")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("192.168.1.42", "192.168.1.0"),
        ("::1", "localhost"),
        ("2001:db8::1", None),
        ("not-an-ip", None),
        (None, None),
        ("", None),
    ],
)
def test_anonymize_ip(raw: str | None, expected: str | None) -> None:
    assert anonymize_ip(raw) == expected


def test_client_ip_prefers_first_forwarded_hop() -> None:
    assert client_ip_from_headers("198.51.100.4, 10.0.0.2", "127.0.0.1") == "198.51.100.4"
    assert client_ip_from_headers(" , 10.0.0.2", "127.0.0.1") == "127.0.0.1"
    assert client_ip_from_headers(None, None) is None


def test_log_search_skips_blank_terms(database: Database) -> None:
    service = SearchLogService(SearchLogRepository(database))

    assert service.log_search("   ", results_count=0) is None
    recorded = service.log_search(" ghia ", results_count=2, remote_addr="10.1.2.3")

    assert recorded is not None
    assert recorded.term == "ghia"
    assert recorded.partial_ip_address == "10.1.2.0"


def test_log_search_failures_do_not_propagate(
    database: Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    capture = _CaptureLogger()
    monkeypatch.setattr(search_log_service, "LOGGER", capture)
    service = SearchLogService(_BrokenRepository(database))

    assert service.log_search("thing", results_count=1) is None
    assert capture.messages == ["search log write failed term_length=5"]


def test_fetch_search_logs_sorts_and_pages(database: Database) -> None:
    service = SearchLogService(SearchLogRepository(database))
    service.log_search("beetle", results_count=10, remote_addr="10.0.0.9")
    service.log_search("axle", results_count=0)
    service.log_search("carb", results_count=5, remote_addr="::1")

    by_results = service.fetch_search_logs(sort_by="resultsCount", sort_direction="asc")
    assert [row.term for row in by_results.logs] == ["axle", "carb", "beetle"]
    assert by_results.logs[0].partial_ip_address == MISSING_IP_LABEL
    assert by_results.logs[1].partial_ip_address == "localhost"

    paged = service.fetch_search_logs(page=2, page_size=2, sort_by="term")
    assert paged.total_count == 3
    assert paged.total_pages == 2
    assert [row.term for row in paged.logs] == ["axle"]

    with pytest.raises(ValueError):
        service.fetch_search_logs(sort_by="password")
