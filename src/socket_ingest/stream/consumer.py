"""
Stream Consumer
===============

TCP client for the bracket-delimited record peer.

This module provides the StreamConsumer class which:
    - Connects to the peer with asyncio streams
    - Feeds every received chunk to a per-connection FrameDecoder
    - Pushes decoded records into a RecordBuffer
    - Handles reconnection with a fixed backoff

Design Rules:
    - One FrameDecoder per connection; an open frame is dropped on disconnect
    - Never awaits persistence; records are queued without blocking
    - Logs transport errors and keeps running
"""

import asyncio
import logging
from typing import Optional

from socket_ingest.models.record import Record
from socket_ingest.stream.buffer import RecordBuffer
from socket_ingest.stream.decoder import DecoderMetrics, FrameDecoder
from socket_ingest.stream.validation import RecordValidator


logger = logging.getLogger(__name__)


class ConsumerMetrics:
    """Metrics for StreamConsumer observability."""

    __slots__ = (
        "chunks_received",
        "bytes_received",
        "reconnect_count",
        "connection_errors",
        "decoder",
    )

    def __init__(self) -> None:
        self.chunks_received: int = 0
        self.bytes_received: int = 0
        self.reconnect_count: int = 0
        self.connection_errors: int = 0
        self.decoder = DecoderMetrics()

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "chunks_received": self.chunks_received,
            "bytes_received": self.bytes_received,
            "reconnect_count": self.reconnect_count,
            "connection_errors": self.connection_errors,
            **self.decoder.to_dict(),
        }


class StreamConsumer:
    """
    TCP consumer for the record stream.

    Attributes:
        host: Peer host
        port: Peer port
        buffer: RecordBuffer to push records into
        connected: Whether currently connected
        metrics: Operational metrics

    Example:
        buffer = RecordBuffer(maxsize=1000)
        consumer = StreamConsumer("localhost", 5555, buffer)

        task = asyncio.create_task(consumer.run())

        # Later, stop gracefully
        await consumer.stop()
        await task
    """

    def __init__(
        self,
        host: str,
        port: int,
        buffer: RecordBuffer,
        validator: Optional[RecordValidator] = None,
        read_size: int = 4096,
        max_frame_bytes: int = 0,
        connect_timeout: float = 10.0,
        reconnect_backoff_ms: int = 500,
        max_reconnect_attempts: int = 0,
    ) -> None:
        """
        Initialize stream consumer.

        Args:
            host: Peer host name or address
            port: Peer TCP port
            buffer: RecordBuffer to push decoded records into
            validator: Payload validator shared by all decoders
            read_size: Maximum bytes per read
            max_frame_bytes: Open frame size limit (0 = unlimited)
            connect_timeout: Seconds to wait for the TCP connect
            reconnect_backoff_ms: Backoff between reconnect attempts
            max_reconnect_attempts: Max consecutive failed attempts (0 = unlimited)
        """
        if read_size < 1:
            raise ValueError("read_size must be >= 1")
        if connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")

        self.host = host
        self.port = port
        self.buffer = buffer
        self.validator = validator or RecordValidator()
        self.read_size = read_size
        self.max_frame_bytes = max_frame_bytes
        self.connect_timeout = connect_timeout
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts

        # State
        self._writer: Optional[asyncio.StreamWriter] = None
        self._connected: bool = False
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        # Attempts since the last successful connect
        self._attempts: int = 0

        self.metrics = ConsumerMetrics()

    @property
    def connected(self) -> bool:
        """Whether currently connected to the peer."""
        return self._connected

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    async def run(self) -> None:
        """
        Start consuming records.

        Runs until stop() is called or reconnect attempts run out.
        """
        self._running = True
        self._stop_event.clear()

        logger.info(f"StreamConsumer starting, connecting to {self.address}")

        while self._running:
            try:
                await self._connect_and_consume()
            except (OSError, asyncio.TimeoutError) as e:
                if not self._running:
                    break

                self.metrics.connection_errors += 1
                logger.error(f"Connection error: {e}")

            self._connected = False
            if not self._running:
                break

            if (
                self.max_reconnect_attempts > 0
                and self._attempts >= self.max_reconnect_attempts
            ):
                logger.error(
                    f"Max reconnect attempts ({self.max_reconnect_attempts}) exceeded"
                )
                break

            self._attempts += 1
            self.metrics.reconnect_count += 1
            backoff_sec = self.reconnect_backoff_ms / 1000.0
            logger.info(
                f"Reconnecting in {backoff_sec:.1f}s "
                f"(attempt {self._attempts})"
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=backoff_sec)
                break
            except asyncio.TimeoutError:
                pass

        self._running = False
        logger.info("StreamConsumer stopped")

    async def stop(self) -> None:
        """
        Stop consuming gracefully.

        Signals the run loop to exit and closes the connection.
        """
        logger.info("StreamConsumer stopping...")
        self._running = False
        self._stop_event.set()

        if self._writer is not None:
            self._writer.close()

        self._connected = False

    def _on_record(self, record: Record) -> None:
        self.buffer.put_nowait(record)

    async def _connect_and_consume(self) -> None:
        """Connect to the peer and decode chunks until disconnect."""
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port),
            timeout=self.connect_timeout,
        )
        self._writer = writer
        self._connected = True
        self._attempts = 0
        logger.info(f"Connected to peer: {self.address}")

        decoder = FrameDecoder(
            validator=self.validator,
            on_record=self._on_record,
            max_frame_bytes=self.max_frame_bytes,
            metrics=self.metrics.decoder,
        )

        try:
            while self._running:
                chunk = await reader.read(self.read_size)
                if not chunk:
                    if self._running:
                        logger.warning("Peer closed the connection")
                    break

                self.metrics.chunks_received += 1
                self.metrics.bytes_received += len(chunk)
                decoder.feed(chunk)
        finally:
            decoder.close()
            self._connected = False
            self._writer = None
            writer.close()
