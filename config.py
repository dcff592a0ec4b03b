"""
Scriptura - Configuration

Centralized configuration management for the reference engine and its
surrounding service. Uses environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional
from enum import Enum

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DatabaseConfig:
    """Verse storage configuration."""
    url: str = field(default_factory=lambda: os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./data/scriptura.db"
    ))
    echo: bool = field(default_factory=lambda: _env_flag("DB_ECHO", "false"))

    # Connection pool settings (ignored by SQLite)
    pool_size: int = field(default_factory=lambda: int(os.getenv("DB_POOL_SIZE", "10")))
    max_overflow: int = field(default_factory=lambda: int(os.getenv("DB_MAX_OVERFLOW", "20")))
    pool_timeout: int = field(default_factory=lambda: int(os.getenv("DB_POOL_TIMEOUT", "30")))


@dataclass
class CanonConfig:
    """Canon table source. Empty path means the bundled KJV table."""
    path: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["CANON_PATH"]) if os.getenv("CANON_PATH") else None
    )


@dataclass
class SearchConfig:
    """Search engine tuning."""
    result_limit: int = field(default_factory=lambda: int(os.getenv("SEARCH_RESULT_LIMIT", "50")))
    max_result_limit: int = field(default_factory=lambda: int(os.getenv("SEARCH_MAX_RESULT_LIMIT", "500")))
    drop_stop_words: bool = field(default_factory=lambda: _env_flag("SEARCH_DROP_STOP_WORDS", "true"))
    snippet_length: int = field(default_factory=lambda: int(os.getenv("SEARCH_SNIPPET_LENGTH", "160")))

    def effective_limit(self, requested: Optional[int] = None) -> int:
        """Clamp a requested result limit into [1, max_result_limit]."""
        limit = requested if requested is not None else self.result_limit
        return max(1, min(limit, self.max_result_limit))


# Tags accepted after a reference ("john 3:16 kjv") when TRANSLATIONS is unset
DEFAULT_TRANSLATIONS = (
    "KJV", "ASV", "WEB", "YLT", "DBY", "BBE", "WBT",
    "NIV", "ESV", "NASB", "NKJV", "NRSV", "RSV", "NLT",
)


@dataclass
class LinkedDataConfig:
    """JSON-LD output and translation configuration."""
    base_uri: str = field(default_factory=lambda: os.getenv("LD_BASE_URI", "https://scriptura.example.org/bible"))
    default_translation: str = field(default_factory=lambda: os.getenv("DEFAULT_TRANSLATION", "KJV"))
    translations: List[str] = field(default_factory=lambda: [
        tag for tag in os.getenv("TRANSLATIONS", ",".join(DEFAULT_TRANSLATIONS)).split(",") if tag.strip()
    ])

    def __post_init__(self):
        self.base_uri = self.base_uri.rstrip("/")
        self.default_translation = self.default_translation.upper()
        self.translations = [tag.strip().upper() for tag in self.translations]

    @property
    def known_translations(self) -> FrozenSet[str]:
        """Every tag a reference may carry, the default included."""
        return frozenset(self.translations) | {self.default_translation}


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: os.getenv("LOG_FORMAT", "json").lower() == "json")
    log_file: Path = field(default_factory=lambda: Path(os.getenv("LOG_FILE", "./logs/scriptura.log")))
    log_to_file: bool = field(default_factory=lambda: _env_flag("LOG_TO_FILE", "false"))


@dataclass
class ObservabilityConfig:
    """
    OpenTelemetry tracing configuration.

    Tracing is off unless OTEL_TRACING_ENABLED=true; logs are always
    structured.
    """
    service_name: str = field(
        default_factory=lambda: os.getenv("OTEL_SERVICE_NAME", "scriptura")
    )
    service_version: str = field(
        default_factory=lambda: os.getenv("OTEL_SERVICE_VERSION", "1.0.0")
    )
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    )
    tracing_enabled: bool = field(
        default_factory=lambda: _env_flag("OTEL_TRACING_ENABLED", "false")
    )
    sample_rate: float = field(
        default_factory=lambda: float(os.getenv("OTEL_SAMPLE_RATE", "1.0"))
    )
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )

    def get_sample_rate_for_env(self) -> float:
        """Get appropriate sample rate based on environment."""
        env = self.environment.lower()
        if env == "production":
            return min(self.sample_rate, 0.1)
        elif env == "staging":
            return min(self.sample_rate, 0.5)
        else:
            return self.sample_rate


@dataclass
class APIConfig:
    """API server configuration."""
    host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8080")))
    workers: int = field(default_factory=lambda: int(os.getenv("API_WORKERS", "1")))
    reload: bool = field(default_factory=lambda: _env_flag("API_RELOAD", "false"))
    cors_origins: List[str] = field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*").split(","))


@dataclass
class Config:
    """Main configuration class combining all sub-configs."""
    env: Environment = field(default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")))

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    canon: CanonConfig = field(default_factory=CanonConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    linked_data: LinkedDataConfig = field(default_factory=LinkedDataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    api: APIConfig = field(default_factory=APIConfig)


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
