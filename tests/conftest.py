"""
Test Configuration
==================

Pytest fixtures and test configuration for SocketIngest.
"""

import pytest


EXAMPLE_STREAM = (
    b"[1468009895549670789,397807]\n"
    b"[1468009895567246398,758675]\n"
    b"[1468009895577565428,538795]\n"
)

CONFIG_ENV_VARS = (
    "SOCKET_HOST",
    "SOCKET_PORT",
    "SOCKET_READ_SIZE",
    "SOCKET_CONNECT_TIMEOUT",
    "SOCKET_RECONNECT_BACKOFF_MS",
    "SOCKET_MAX_RECONNECT_ATTEMPTS",
    "SOCKET_MAX_QUEUE_SIZE",
    "DECODER_VALIDATION",
    "DECODER_MAX_FRAME_BYTES",
    "DATABASE_URL",
    "DB_HOST",
    "DB_PORT",
    "DB_DATABASE",
    "DB_USER",
    "DB_PASSWORD",
    "TABLE_NAME",
    "SERVER_HOST",
    "PORT",
    "INGEST_PORT",
    "INGEST_LOG_LEVEL",
)


@pytest.fixture
def example_stream():
    """The three-record session from the peer protocol description."""
    return EXAMPLE_STREAM


@pytest.fixture
def expected_records():
    """Records decoded from example_stream, in order."""
    from socket_ingest.models.record import Record

    return [
        Record("1468009895549670789", "397807"),
        Record("1468009895567246398", "758675"),
        Record("1468009895577565428", "538795"),
    ]


@pytest.fixture
def sqlite_url(tmp_path):
    """Async SQLite URL in a per-test temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'ingest.db'}"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable that overrides configuration."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
