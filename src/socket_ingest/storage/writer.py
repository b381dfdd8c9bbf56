"""
Record Writer
=============

Background task that drains the RecordBuffer into the RecordSink.

Decoding and persistence run as separate tasks: the consumer queues
records without waiting, and this writer persists them one at a time
in queue order. Completion order of inserts therefore matches arrival
order, but a failed insert is not retried.
"""

import asyncio
import logging

from socket_ingest.models.record import Record
from socket_ingest.storage.sink import RecordSink
from socket_ingest.stream.buffer import RecordBuffer


logger = logging.getLogger(__name__)


class RecordWriter:
    """
    Drains a RecordBuffer into a RecordSink.

    Example:
        writer = RecordWriter(buffer, sink)
        task = asyncio.create_task(writer.run())
        ...
        writer.stop()
        await task   # returns after queued records are written
    """

    def __init__(
        self,
        buffer: RecordBuffer,
        sink: RecordSink,
        poll_interval: float = 0.5,
    ) -> None:
        self.buffer = buffer
        self.sink = sink
        self.poll_interval = poll_interval

        self._running: bool = False
        self.records_written: int = 0
        self.errors: int = 0

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Persist records until stop() is called, then drain the buffer."""
        self._running = True
        logger.info("RecordWriter started")

        try:
            while self._running:
                record = await self.buffer.get(timeout=self.poll_interval)
                if record is None:
                    continue
                await self._write(record)
        except asyncio.CancelledError:
            logger.info("RecordWriter cancelled")
            raise

        drained = 0
        while (record := self.buffer.get_nowait()) is not None:
            await self._write(record)
            drained += 1

        logger.info(f"RecordWriter stopped (drained {drained} queued records)")

    def stop(self) -> None:
        """Signal the run loop to finish after draining."""
        self._running = False

    async def _write(self, record: Record) -> None:
        try:
            if await self.sink.persist(record):
                self.records_written += 1
        except Exception as e:
            self.errors += 1
            logger.error(f"Writer error for {record!r}: {e}")

    def metrics(self) -> dict:
        return {
            "records_written": self.records_written,
            "writer_errors": self.errors,
        }
