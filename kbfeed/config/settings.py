"""
kbfeed Configuration System
===========================

YAML configuration file plus environment variables, validated with Pydantic.
Environment variables (prefix ``KBFEED_``) override values from the YAML file,
which override Field defaults.
"""

import os
from pathlib import Path
from typing import List, Optional, Any, Dict
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator, AliasChoices
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from ..utils.exceptions import ConfigurationError, ErrorCode

DEFAULT_CONFIG_PATH = "config.yml"
CONFIG_PATH_ENV_VAR = "KBFEED_CONFIG"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedEndpointConfig(BaseModel):
    """One configured RSS/Atom feed.

    ``id`` is the dedup identity key. Changing it after deployment makes the
    feed's ingest history unreachable and every entry gets submitted again.
    """
    id: str = Field(..., pattern=r"^[a-z0-9_-]+$", description="Stable lowercase feed identifier")
    name: str = Field(..., min_length=1, description="Display name, used in cache file names")
    url: str = Field(..., min_length=1, description="Feed URL")
    follow_link: bool = Field(
        default=False,
        validation_alias=AliasChoices("follow_link", "data_in_link"),
        description="Fetch the linked document instead of synthesizing from feed metadata",
    )
    author_override: Optional[str] = Field(default=None, description="Author listed on synthesized documents")
    convert_html_to_markdown: bool = Field(
        default=False,
        validation_alias=AliasChoices("convert_html_to_markdown", "html_to_markdown"),
        description="Convert fetched HTML to Markdown before upload",
    )
    knowledge_base_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("knowledge_base_id", "owui_knowledge_base"),
        description="Remote knowledge base to link uploaded files into",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator('author_override')
    @classmethod
    def empty_author_is_none(cls, v):
        """Treat a blank override as unset."""
        if v is not None and not v.strip():
            return None
        return v


class KnowledgeServiceSettings(BaseModel):
    """Remote knowledge-base (Open WebUI) API configuration."""
    api_endpoint: str = Field(..., min_length=1, description="API base URL, e.g. https://host/api")
    api_token: str = Field(..., min_length=1, description="Bearer token")

    @field_validator('api_endpoint')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Endpoint paths are appended with a leading slash."""
        return v.rstrip("/")


class LimitsSettings(BaseModel):
    """Network and pacing settings."""
    submission_delay_seconds: float = Field(
        default=5.0, ge=0.0, description="Pause after each successfully submitted entry"
    )
    request_timeout: Optional[float] = Field(
        default=None, gt=0, description="Outbound HTTP timeout in seconds (None: no timeout)"
    )
    user_agent: str = Field(default="Mozilla/5.0", description="User-Agent for linked document fetches")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging on the console")
    console_logging: bool = Field(default=True, description="Enable console logging")


class KbFeedSettings(BaseSettings):
    """Main application settings."""

    db_file: str = Field(..., min_length=1, description="SQLite dedup database path")
    content_dir: str = Field(..., min_length=1, description="Directory for cached documents")
    open_webui: KnowledgeServiceSettings
    rss: List[FeedEndpointConfig] = Field(default_factory=list)

    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "KBFEED_",
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; the environment wins over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @model_validator(mode="after")
    def feed_ids_unique(self):
        """Feed ids are dedup keys and must not collide."""
        seen = set()
        for feed in self.rss:
            if feed.id in seen:
                raise ValueError(f"Duplicate feed id: {feed.id}")
            seen.add(feed.id)
        return self

    def validate_configuration(self) -> None:
        """Validate and prepare filesystem locations."""
        errors = []

        try:
            Path(self.db_file).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        content_dir = Path(self.content_dir)
        try:
            content_dir.mkdir(parents=True, exist_ok=True)
            if not os.access(content_dir, os.W_OK):
                errors.append(f"Content directory is not writable: {content_dir}")
        except OSError as e:
            errors.append(f"Invalid content directory: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if not self.rss:
            errors.append("No feeds configured under 'rss'")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_feed(self, feed_id: str) -> Optional[FeedEndpointConfig]:
        """Look up a configured feed by id."""
        for feed in self.rss:
            if feed.id == feed_id:
                return feed
        return None

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    """Pick the configuration file: explicit path, then env var, then ./config.yml."""
    return Path(config_path or os.getenv(CONFIG_PATH_ENV_VAR) or DEFAULT_CONFIG_PATH)


def read_config_file(config_path: Path) -> Dict[str, Any]:
    """Read the YAML document and normalize hyphenated top-level keys.

    Raises:
        ConfigurationError: If the file is missing or not a YAML mapping
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            error_code=ErrorCode.CONFIG_MISSING
        ) from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to read configuration file {config_path}: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping",
            error_code=ErrorCode.CONFIG_PARSE_ERROR
        )

    return {str(key).replace("-", "_"): value for key, value in data.items()}


def load_settings(config_path: Optional[str] = None, validate: bool = True) -> KbFeedSettings:
    """Load settings from the YAML file and environment variables.

    Args:
        config_path: Configuration file path (see resolve_config_path)
        validate: Run validate_configuration() after loading

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is missing or invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    path = resolve_config_path(config_path)
    data = read_config_file(path)

    try:
        settings = KbFeedSettings(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {path}: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e

    if validate:
        settings.validate_configuration()

    return settings
