from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".howto-vw"
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (
    ("db_path", Path("catalog.db")),
    ("log_dir", Path("logs")),
)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = ("telemetry_enabled",)


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _data_dir_default_note(relative_path: Path) -> str:
    return f"Defaults to `${{HOWTO_VW_DATA_DIR}}/{relative_path}` when not explicitly set."


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Canonical runtime configuration.

    Every option is read from `HOWTO_VW_*` environment variables (or `.env`).
    The two third-party API keys also accept their conventional unprefixed names.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOWTO_VW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Core paths.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for the catalog database and logs.",
    )
    db_path: Path = Field(
        default=_default_in_data_dir(Path("catalog.db")),
        description=f"SQLite database path. {_data_dir_default_note(Path('catalog.db'))}",
    )

    # Site.
    site_name: str = Field(
        default="How-To VW Videos",
        description="Public site name returned by the public API.",
    )
    site_url: str = Field(
        default="http://localhost:3000",
        description="Canonical public site URL.",
    )
    public_page_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Videos per page on public listing pages.",
    )
    popular_window_days: int = Field(
        default=7,
        ge=1,
        description="Lookback window for the recent-popular video feed.",
    )
    admin_api_key: str | None = Field(
        default=None,
        description=(
            "Optional bearer token required on `/api/admin/*`. "
            "Admin routes are open when unset."
        ),
    )

    # YouTube.
    youtube_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HOWTO_VW_YOUTUBE_API_KEY", "YOUTUBE_DATA_API_KEY"),
        description="YouTube Data API v3 key used for search, status checks and refetch.",
    )
    youtube_search_max_results: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Default number of search results requested from YouTube.",
    )
    youtube_status_batch_size: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Video ids per `videos.list` call in the status maintenance run.",
    )
    youtube_transcript_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts made for each transcript fetch before giving up.",
    )
    youtube_transcript_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between transcript fetch attempts.",
    )

    # OpenAI.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HOWTO_VW_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI API key used for transcript classification.",
    )
    openai_model: str = Field(
        default="gpt-3.5-turbo",
        description="Chat completion model used for transcript classification.",
    )

    # Logging.
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description=f"Directory for backend log files. {_data_dir_default_note(Path('logs'))}",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (stdout).",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("HOWTO_VW_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("HOWTO_VW_TELEMETRY_SINK must be set to: none, log.")

    @field_validator("site_url", mode="before")
    @classmethod
    def _normalize_site_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("HOWTO_VW_SITE_URL must be a string.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError("HOWTO_VW_SITE_URL must not be empty.")
        return normalized

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)

    @field_validator("youtube_api_key", "openai_api_key", "admin_api_key", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)


def _validate_integration_keys(
    *,
    youtube_api_key: str | None,
    openai_api_key: str | None,
) -> None:
    errors: list[str] = []

    if youtube_api_key is None:
        errors.append(
            "HOWTO_VW_YOUTUBE_API_KEY (or YOUTUBE_DATA_API_KEY) is required for YouTube tooling."
        )
    if openai_api_key is None:
        errors.append(
            "HOWTO_VW_OPENAI_API_KEY (or OPENAI_API_KEY) is required for transcript analysis."
        )

    if errors:
        bullets = "\n".join(f"- {message}" for message in errors)
        raise ValueError(
            "Invalid configuration for import tooling:\n"
            f"{bullets}"
        )


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings(*, require_integration_keys: bool = False) -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    settings = _resolve_path_fields(settings)

    if require_integration_keys:
        _validate_integration_keys(
            youtube_api_key=settings.youtube_api_key,
            openai_api_key=settings.openai_api_key,
        )

    return settings
