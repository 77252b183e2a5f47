from __future__ import annotations

import argparse
import logging
from time import perf_counter

from vwvideos.app.config import load_settings
from vwvideos.app.dependencies import CatalogServices, build_catalog_services
from vwvideos.app.logging_config import configure_application_logging
from vwvideos.app.repositories.database import Database
from vwvideos.app.services.openai_service import OpenAIClassifier
from vwvideos.app.services.youtube_service import YouTubeService
from vwvideos.app.telemetry import build_telemetry_client

LOGGER = logging.getLogger("howto_vw.scripts.batch_import")

_SETUP_FAILURE_IDS = frozenset({"search", "batch"})


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Search YouTube, classify every new result with OpenAI and store it: "
            "how-to videos are published, everything else is rejected."
        ),
    )
    parser.add_argument("query", help="YouTube search query, e.g. 'vw beetle brake repair'.")
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Number of search results to process (defaults to the configured value).",
    )
    return parser.parse_args()


def run_batch_import(
    services: CatalogServices, query: str, *, max_results: int | None = None
) -> int:
    results = services.imports.batch_import_videos(query, max_results=max_results)
    for entry in results:
        marker = "ok" if entry["success"] else "failed"
        line = f"  [{marker}] {entry['video_id']}: {entry['message']}"
        if entry["error"]:
            line += f" ({entry['error']})"
        print(line)

    succeeded = sum(1 for entry in results if entry["success"])
    print(f"Processed {len(results)} result(s), {succeeded} stored.")
    if any(entry["video_id"] in _SETUP_FAILURE_IDS for entry in results):
        LOGGER.error("batch import failed query=%s", query)
        return 1
    return 0


def main() -> int:
    args = _parse_args()
    try:
        settings = load_settings(require_integration_keys=True)
    except ValueError as exc:
        print(str(exc))
        return 2
    configure_application_logging(settings)
    database = Database(settings.db_path)
    database.initialize()

    services = build_catalog_services(
        settings,
        database=database,
        youtube=YouTubeService(
            settings.youtube_api_key,
            transcript_max_attempts=settings.youtube_transcript_max_attempts,
            transcript_retry_delay_seconds=settings.youtube_transcript_retry_delay_seconds,
        ),
        classifier=OpenAIClassifier(settings.openai_api_key, model=settings.openai_model),
        telemetry=build_telemetry_client(
            enabled=settings.telemetry_enabled,
            sink=settings.telemetry_sink,
        ),
    )

    started_at = perf_counter()
    exit_code = run_batch_import(services, args.query, max_results=args.max_results)
    print(f"Batch import finished in {perf_counter() - started_at:.2f}s.")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
