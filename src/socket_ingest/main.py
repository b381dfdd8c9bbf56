"""
SocketIngest Main Application
=============================

FastAPI entry point for the ingest service.

Pipeline:
    TCP peer -> StreamConsumer (FrameDecoder) -> RecordBuffer
             -> RecordWriter -> RecordSink (SQL)

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (connected to the peer?)
    GET  /metrics   - Decoder, buffer and sink counters
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from socket_ingest.config import settings
from socket_ingest.storage import RecordSink, RecordWriter
from socket_ingest.stream import RecordBuffer, RecordValidator, StreamConsumer


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_record_buffer: Optional[RecordBuffer] = None
_record_sink: Optional[RecordSink] = None
_record_writer: Optional[RecordWriter] = None
_stream_consumer: Optional[StreamConsumer] = None

_consumer_task: Optional[asyncio.Task] = None
_writer_task: Optional[asyncio.Task] = None

_startup_time: float = 0.0


def get_stream_consumer() -> Optional[StreamConsumer]:
    return _stream_consumer

def get_record_buffer() -> Optional[RecordBuffer]:
    return _record_buffer


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _record_buffer, _record_sink, _record_writer, _stream_consumer
    global _consumer_task, _writer_task, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    # Storage
    _record_sink = RecordSink(
        settings.database.async_url(),
        table_name=settings.database.table_name,
    )
    await _record_sink.init_schema()

    # Hand-off between decoding and persistence
    _record_buffer = RecordBuffer(maxsize=settings.stream.max_queue_size)
    _record_writer = RecordWriter(_record_buffer, _record_sink)
    _writer_task = asyncio.create_task(_record_writer.run(), name="record_writer")

    # Ingestion
    logger.info(
        f"Peer: {settings.stream.host}:{settings.stream.port}, "
        f"validation={settings.decoder.validation.value}"
    )
    _stream_consumer = StreamConsumer(
        host=settings.stream.host,
        port=settings.stream.port,
        buffer=_record_buffer,
        validator=RecordValidator(settings.decoder.validation),
        read_size=settings.stream.read_size,
        max_frame_bytes=settings.decoder.max_frame_bytes,
        connect_timeout=settings.stream.connect_timeout_seconds,
        reconnect_backoff_ms=settings.stream.reconnect_backoff_ms,
        max_reconnect_attempts=settings.stream.max_reconnect_attempts,
    )
    _consumer_task = asyncio.create_task(_stream_consumer.run(), name="stream_consumer")

    logger.info("All components started")

    yield

    # Shutdown: stop intake first, then drain the writer, then the engine
    logger.info("Shutting down gracefully...")

    await _stream_consumer.stop()
    try:
        await asyncio.wait_for(_consumer_task, timeout=5.0)
    except asyncio.TimeoutError:
        _consumer_task.cancel()
        try:
            await _consumer_task
        except asyncio.CancelledError:
            pass

    _record_writer.stop()
    try:
        await asyncio.wait_for(_writer_task, timeout=10.0)
    except asyncio.TimeoutError:
        _writer_task.cancel()
        try:
            await _writer_task
        except asyncio.CancelledError:
            pass
        lost = _record_buffer.clear()
        logger.warning(f"Writer did not drain in time, {lost} records lost")

    await _record_sink.close()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SocketIngest",
    description="Bracket-delimited record stream ingestion",
    version=settings.service.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "SocketIngest",
        "name": settings.service.name,
        "version": settings.service.version,
        "status": "running",
        "peer": f"{settings.stream.host}:{settings.stream.port}",
        "table": settings.database.table_name,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the service connected to the peer?

    Returns 200 when connected, 503 otherwise.
    """
    consumer = get_stream_consumer()
    stream_connected = consumer.connected if consumer else False

    if stream_connected:
        return JSONResponse({
            "status": "ready",
            "stream_connected": True,
            "records_decoded": consumer.metrics.decoder.records_emitted,
        })
    return JSONResponse(
        {"status": "not_ready", "stream_connected": False},
        status_code=503,
    )


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    consumer = get_stream_consumer()
    buffer = get_record_buffer()

    stream_metrics = {}
    if consumer:
        stream_metrics = {
            "stream_connected": consumer.connected,
            **consumer.metrics.to_dict(),
        }

    buffer_metrics = buffer.metrics() if buffer else {}

    storage_metrics = {}
    if _record_sink:
        storage_metrics.update(_record_sink.metrics())
    if _record_writer:
        storage_metrics.update(_record_writer.metrics())

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "validation": settings.decoder.validation.value,
        **stream_metrics,
        **buffer_metrics,
        **storage_metrics,
    })


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "socket_ingest.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
