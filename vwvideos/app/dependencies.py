from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from vwvideos.app.config import AppSettings, load_settings
from vwvideos.app.repositories.category_repository import CategoryRepository
from vwvideos.app.repositories.channel_repository import ChannelRepository
from vwvideos.app.repositories.database import Database
from vwvideos.app.repositories.search_log_repository import SearchLogRepository
from vwvideos.app.repositories.tag_repository import TagRepository
from vwvideos.app.repositories.video_repository import VideoRepository
from vwvideos.app.repositories.vw_type_repository import VWTypeRepository
from vwvideos.app.services.category_service import CategoryService
from vwvideos.app.services.channel_service import ChannelService
from vwvideos.app.services.import_service import ImportService
from vwvideos.app.services.maintenance_service import MaintenanceService
from vwvideos.app.services.openai_service import OpenAIClassifier
from vwvideos.app.services.public_service import PublicCatalogService
from vwvideos.app.services.search_log_service import SearchLogService
from vwvideos.app.services.tag_service import TagService
from vwvideos.app.services.video_service import VideoService
from vwvideos.app.services.vw_type_service import VWTypeService
from vwvideos.app.services.youtube_service import YouTubeService
from vwvideos.app.telemetry import TelemetryClient, build_telemetry_client


@dataclass(frozen=True)
class CatalogServices:
    categories: CategoryService
    tags: TagService
    vw_types: VWTypeService
    channels: ChannelService
    videos: VideoService
    imports: ImportService
    maintenance: MaintenanceService
    search_logs: SearchLogService
    public: PublicCatalogService


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_database() -> Database:
    settings = get_settings()
    database = Database(settings.db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_youtube_service() -> YouTubeService:
    settings = get_settings()
    return YouTubeService(
        settings.youtube_api_key,
        transcript_max_attempts=settings.youtube_transcript_max_attempts,
        transcript_retry_delay_seconds=settings.youtube_transcript_retry_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_openai_classifier() -> OpenAIClassifier:
    settings = get_settings()
    return OpenAIClassifier(settings.openai_api_key, model=settings.openai_model)


@lru_cache(maxsize=1)
def get_services() -> CatalogServices:
    return build_catalog_services(
        get_settings(),
        database=get_database(),
        youtube=get_youtube_service(),
        classifier=get_openai_classifier(),
        telemetry=get_telemetry(),
    )


def build_catalog_services(
    settings: AppSettings,
    *,
    database: Database,
    youtube: YouTubeService,
    classifier: OpenAIClassifier,
    telemetry: TelemetryClient,
) -> CatalogServices:
    category_repository = CategoryRepository(database)
    vw_type_repository = VWTypeRepository(database)
    video_repository = VideoRepository(database)

    categories = CategoryService(category_repository)
    tags = TagService(TagRepository(database))
    vw_types = VWTypeService(vw_type_repository)
    channels = ChannelService(ChannelRepository(database))
    search_logs = SearchLogService(SearchLogRepository(database))

    return CatalogServices(
        categories=categories,
        tags=tags,
        vw_types=vw_types,
        channels=channels,
        videos=VideoService(
            videos=video_repository,
            categories=category_repository,
            vw_types=vw_type_repository,
            youtube=youtube,
            classifier=classifier,
            telemetry=telemetry,
        ),
        imports=ImportService(
            videos=video_repository,
            categories=category_repository,
            vw_types=vw_type_repository,
            category_service=categories,
            youtube=youtube,
            classifier=classifier,
            telemetry=telemetry,
            default_max_results=settings.youtube_search_max_results,
        ),
        maintenance=MaintenanceService(
            videos=video_repository,
            youtube=youtube,
            batch_size=settings.youtube_status_batch_size,
            telemetry=telemetry,
        ),
        search_logs=search_logs,
        public=PublicCatalogService(
            videos=video_repository,
            category_service=categories,
            vw_type_service=vw_types,
            tag_service=tags,
            channel_service=channels,
            search_log_service=search_logs,
            site_name=settings.site_name,
            site_url=settings.site_url,
            page_size=settings.public_page_size,
            popular_window_days=settings.popular_window_days,
        ),
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    get_services.cache_clear()
    get_openai_classifier.cache_clear()
    get_youtube_service.cache_clear()
    get_database.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
