"""
Record Buffer
=============

Hand-off between the decoder callback and the record writer task.

Records are produced inside FrameDecoder.feed(), which is synchronous and
runs on the socket read path. The writer awaits database inserts. The
buffer lets the two run at their own pace: a slow or unavailable database
delays persistence but never blocks reads from the peer.

Design Rules:
    - Bounded; when full the oldest queued record is discarded
    - One event loop, one producer (consumer task), one reader (writer task)
    - Records pass through untouched
"""

import asyncio
import logging
from typing import Optional

from socket_ingest.models.record import Record


logger = logging.getLogger(__name__)

# Log the first overflow and then every Nth one
DROP_LOG_INTERVAL = 100


class RecordBuffer:
    """
    Bounded record queue with drop-oldest overflow.

    Example:
        buffer = RecordBuffer(maxsize=1000)

        # StreamConsumer, from the decoder callback
        buffer.put_nowait(record)

        # RecordWriter
        record = await buffer.get(timeout=0.5)
    """

    def __init__(self, maxsize: int = 1000) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._queue: asyncio.Queue[Record] = asyncio.Queue(maxsize=maxsize)
        self._dropped_count: int = 0
        self._total_put: int = 0

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def size(self) -> int:
        """Records waiting for the writer."""
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        """Records discarded because the writer fell behind."""
        return self._dropped_count

    @property
    def total_put(self) -> int:
        return self._total_put

    def put_nowait(self, record: Record) -> bool:
        """
        Queue a decoded record.

        Returns:
            False if the oldest queued record had to be discarded to make
            room, True otherwise.
        """
        self._total_put += 1
        displaced = self._queue.full()

        if displaced:
            self._queue.get_nowait()
            self._dropped_count += 1
            if self._dropped_count % DROP_LOG_INTERVAL == 1:
                logger.warning(
                    f"Writer is behind, discarding oldest records "
                    f"(capacity {self.capacity}, {self._dropped_count} dropped so far)"
                )

        self._queue.put_nowait(record)
        return not displaced

    async def get(self, timeout: Optional[float] = None) -> Optional[Record]:
        """Wait for the next record; None if `timeout` seconds pass first."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def get_nowait(self) -> Optional[Record]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def clear(self) -> int:
        """Discard everything still queued and return how many records that was."""
        discarded = 0
        while self.get_nowait() is not None:
            discarded += 1
        return discarded

    def metrics(self) -> dict:
        return {
            "buffer_size": self.size,
            "buffer_capacity": self.capacity,
            "buffer_dropped": self._dropped_count,
            "buffer_total": self._total_put,
        }
