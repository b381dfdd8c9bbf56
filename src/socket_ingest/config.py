"""
SocketIngest Configuration
==========================

This module handles configuration loading for the ingest service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SOCKET_HOST                 -> stream.host
    SOCKET_PORT                 -> stream.port
    SOCKET_READ_SIZE            -> stream.read_size
    SOCKET_CONNECT_TIMEOUT      -> stream.connect_timeout_seconds
    SOCKET_RECONNECT_BACKOFF_MS -> stream.reconnect_backoff_ms
    SOCKET_MAX_RECONNECT_ATTEMPTS -> stream.max_reconnect_attempts
    SOCKET_MAX_QUEUE_SIZE       -> stream.max_queue_size
    DECODER_VALIDATION          -> decoder.validation
    DECODER_MAX_FRAME_BYTES     -> decoder.max_frame_bytes
    DATABASE_URL                -> database.url
    DB_HOST / DB_PORT / DB_DATABASE / DB_USER / DB_PASSWORD -> database.*
    TABLE_NAME                  -> database.table_name
    SERVER_HOST                 -> server.host
    PORT / INGEST_PORT          -> server.port
    INGEST_LOG_LEVEL            -> logging.level

Example:
    from socket_ingest.config import settings

    print(settings.stream.host, settings.stream.port)
    print(settings.database.async_url())
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from sqlalchemy.engine import URL

from socket_ingest.storage.tables import DEFAULT_TABLE_NAME
from socket_ingest.stream.validation import ValidationMode


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="socket-ingest", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class StreamConfig(BaseModel):
    """Peer connection configuration."""

    host: str = Field(default="localhost", description="Peer host")
    port: int = Field(default=5555, ge=1, le=65535, description="Peer TCP port")
    read_size: int = Field(
        default=4096,
        ge=1,
        description="Maximum bytes per socket read",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the TCP connect",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=0,
        description="Backoff in milliseconds between reconnect attempts",
    )
    max_reconnect_attempts: int = Field(
        default=0,
        ge=0,
        description="Maximum reconnection attempts (0 = unlimited)",
    )
    max_queue_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum size of the record buffer",
    )


class DecoderConfig(BaseModel):
    """Frame decoder configuration."""

    validation: ValidationMode = Field(
        default=ValidationMode.LEGACY,
        description="Payload validation: 'legacy' (substring) or 'strict'",
    )
    max_frame_bytes: int = Field(
        default=0,
        ge=0,
        description="Abandon open frames larger than this (0 = unlimited)",
    )


class DatabaseConfig(BaseModel):
    """Destination database configuration."""

    url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy async URL; overrides the fields below",
    )
    driver: str = Field(default="postgresql+asyncpg", description="Dialect+driver")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database user")
    password: str = Field(default="", description="Database password")
    table_name: str = Field(
        default=DEFAULT_TABLE_NAME,
        min_length=1,
        description="Destination table",
    )

    def async_url(self) -> str:
        """Return the SQLAlchemy URL for the async engine."""
        if self.url:
            return self.url
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        ).render_as_string(hide_password=False)


class ServerConfig(BaseModel):
    """Health API server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for SocketIngest.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_host := os.environ.get("SOCKET_HOST"):
        config_data.setdefault("stream", {})["host"] = env_host
    if env_port := os.environ.get("SOCKET_PORT"):
        config_data.setdefault("stream", {})["port"] = int(env_port)
    if env_read := os.environ.get("SOCKET_READ_SIZE"):
        config_data.setdefault("stream", {})["read_size"] = int(env_read)
    if env_timeout := os.environ.get("SOCKET_CONNECT_TIMEOUT"):
        config_data.setdefault("stream", {})["connect_timeout_seconds"] = float(env_timeout)
    if env_backoff := os.environ.get("SOCKET_RECONNECT_BACKOFF_MS"):
        config_data.setdefault("stream", {})["reconnect_backoff_ms"] = int(env_backoff)
    if env_attempts := os.environ.get("SOCKET_MAX_RECONNECT_ATTEMPTS"):
        config_data.setdefault("stream", {})["max_reconnect_attempts"] = int(env_attempts)
    if env_queue := os.environ.get("SOCKET_MAX_QUEUE_SIZE"):
        config_data.setdefault("stream", {})["max_queue_size"] = int(env_queue)

    # Decoder settings
    if env_validation := os.environ.get("DECODER_VALIDATION"):
        config_data.setdefault("decoder", {})["validation"] = env_validation.lower()
    if env_max_frame := os.environ.get("DECODER_MAX_FRAME_BYTES"):
        config_data.setdefault("decoder", {})["max_frame_bytes"] = int(env_max_frame)

    # Database settings
    if env_url := os.environ.get("DATABASE_URL"):
        config_data.setdefault("database", {})["url"] = env_url
    if env_db_host := os.environ.get("DB_HOST"):
        config_data.setdefault("database", {})["host"] = env_db_host
    if env_db_port := os.environ.get("DB_PORT"):
        config_data.setdefault("database", {})["port"] = int(env_db_port)
    if env_db_name := os.environ.get("DB_DATABASE"):
        config_data.setdefault("database", {})["database"] = env_db_name
    if env_db_user := os.environ.get("DB_USER"):
        config_data.setdefault("database", {})["user"] = env_db_user
    if env_db_password := os.environ.get("DB_PASSWORD"):
        config_data.setdefault("database", {})["password"] = env_db_password
    if env_table := os.environ.get("TABLE_NAME"):
        config_data.setdefault("database", {})["table_name"] = env_table

    # Server settings
    if env_server_host := os.environ.get("SERVER_HOST"):
        config_data.setdefault("server", {})["host"] = env_server_host
    if env_server_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_server_port)
    elif env_server_port := os.environ.get("INGEST_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_server_port)

    # Logging settings
    if env_log := os.environ.get("INGEST_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
