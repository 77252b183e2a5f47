from __future__ import annotations

import argparse
import logging
from time import perf_counter

from vwvideos.app.config import load_settings
from vwvideos.app.logging_config import configure_application_logging
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.video_repository import VideoRepository
from vwvideos.app.services.maintenance_service import (
    NO_PUBLISHED_VIDEOS_MESSAGE,
    MaintenanceService,
)
from vwvideos.app.services.youtube_service import YouTubeService
from vwvideos.app.telemetry import build_telemetry_client

LOGGER = logging.getLogger("howto_vw.scripts.check_video_status")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Check every published video against the YouTube Data API and mark videos "
            "that are gone, private or unprocessed as unavailable."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print the summary line, not the per-video details.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    settings = load_settings()
    configure_application_logging(settings)
    database = Database(settings.db_path)
    database.initialize()

    service = MaintenanceService(
        videos=VideoRepository(database),
        youtube=YouTubeService(settings.youtube_api_key),
        batch_size=settings.youtube_status_batch_size,
        telemetry=build_telemetry_client(
            enabled=settings.telemetry_enabled,
            sink=settings.telemetry_sink,
        ),
    )

    started_at = perf_counter()
    summary = service.check_published_video_statuses()
    duration = perf_counter() - started_at

    print(f"Video status check completed in {duration:.2f}s.")
    if summary.service_error:
        print(f"Service error: {summary.service_error}")
    print(f"  Total videos checked: {summary.total_checked}")
    print(f"  Total API errors during check: {summary.total_api_errors}")
    print(f"  Total videos found invalid and updated: {summary.total_found_invalid}")
    if summary.details and not args.quiet:
        print("\nDetails:")
        for detail in summary.details:
            if detail.is_valid:
                continue
            line = f"  - {detail.youtube_video_id} ({detail.title}): {detail.reason}"
            if detail.error:
                line += f" Error: {detail.error}"
            print(line)

    if summary.service_error and summary.service_error != NO_PUBLISHED_VIDEOS_MESSAGE:
        LOGGER.error("video status check failed error=%s", summary.service_error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
