"""
Stream Consumer Tests
=====================

StreamConsumer against a local asyncio TCP peer.
"""

import asyncio
import time

import pytest

from socket_ingest.models.record import Record
from socket_ingest.stream.buffer import RecordBuffer
from socket_ingest.stream.consumer import StreamConsumer
from socket_ingest.stream.validation import RecordValidator, ValidationMode


async def wait_until(condition, timeout=3.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def drain(buffer):
    records = []
    while (record := buffer.get_nowait()) is not None:
        records.append(record)
    return records


class Peer:
    """Local TCP peer serving one scripted byte sequence per connection."""

    def __init__(self, scripts):
        self.scripts = list(scripts)
        self.connections = 0
        self.release = asyncio.Event()
        self.server = None

    async def start(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self.server.sockets[0].getsockname()[1]

    async def close(self):
        self.release.set()
        self.server.close()
        await self.server.wait_closed()

    async def _handle(self, reader, writer):
        index = self.connections
        self.connections += 1
        chunks, keep_open = self.scripts[min(index, len(self.scripts) - 1)]

        for chunk in chunks:
            writer.write(chunk)
            await writer.drain()
            await asyncio.sleep(0.005)

        if keep_open:
            await self.release.wait()
        writer.close()


@pytest.mark.asyncio
async def test_decodes_records_split_across_reads(example_stream, expected_records):
    chunks = [example_stream[i:i + 7] for i in range(0, len(example_stream), 7)]
    peer = Peer([(chunks, True)])
    port = await peer.start()

    buffer = RecordBuffer()
    consumer = StreamConsumer("127.0.0.1", port, buffer, read_size=5)
    task = asyncio.create_task(consumer.run())
    try:
        await wait_until(lambda: buffer.size == 3)
        assert consumer.connected
    finally:
        await consumer.stop()
        await asyncio.wait_for(task, timeout=2.0)
        await peer.close()

    assert drain(buffer) == expected_records
    assert not consumer.connected
    assert consumer.metrics.bytes_received == len(example_stream)
    assert consumer.metrics.decoder.records_emitted == 3
    assert consumer.metrics.reconnect_count == 0


@pytest.mark.asyncio
async def test_open_frame_is_dropped_on_reconnect():
    peer = Peer([
        ([b"[1,2]\n[999,"], False),
        ([b"3]\n[4,5]\n"], True),
    ])
    port = await peer.start()

    buffer = RecordBuffer()
    consumer = StreamConsumer(
        "127.0.0.1",
        port,
        buffer,
        reconnect_backoff_ms=0,
    )
    task = asyncio.create_task(consumer.run())
    try:
        await wait_until(lambda: buffer.total_put == 2)
    finally:
        await consumer.stop()
        await asyncio.wait_for(task, timeout=2.0)
        await peer.close()

    # the half frame from the first connection never joins the second one
    assert drain(buffer) == [Record("1", "2"), Record("4", "5")]
    assert consumer.metrics.reconnect_count == 1
    assert consumer.metrics.decoder.unterminated_frames == 1
    assert consumer.metrics.decoder.frames_rejected == 1


@pytest.mark.asyncio
async def test_strict_validator_is_used_by_decoder():
    peer = Peer([([b"[x5,3y]\n[5,3]\n"], True)])
    port = await peer.start()

    buffer = RecordBuffer()
    consumer = StreamConsumer(
        "127.0.0.1",
        port,
        buffer,
        validator=RecordValidator(ValidationMode.STRICT),
    )
    task = asyncio.create_task(consumer.run())
    try:
        await wait_until(lambda: consumer.metrics.decoder.frames_rejected == 1)
        await wait_until(lambda: buffer.size == 1)
    finally:
        await consumer.stop()
        await asyncio.wait_for(task, timeout=2.0)
        await peer.close()

    assert drain(buffer) == [Record("5", "3")]


@pytest.mark.asyncio
async def test_gives_up_after_max_reconnect_attempts():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    consumer = StreamConsumer(
        "127.0.0.1",
        port,
        RecordBuffer(),
        reconnect_backoff_ms=0,
        max_reconnect_attempts=2,
    )
    await asyncio.wait_for(consumer.run(), timeout=5.0)

    assert consumer.metrics.connection_errors == 3
    assert consumer.metrics.reconnect_count == 2
    assert not consumer.connected


def test_read_size_must_be_positive():
    with pytest.raises(ValueError):
        StreamConsumer("127.0.0.1", 5555, RecordBuffer(), read_size=0)


@pytest.mark.asyncio
async def test_clean_disconnects_do_not_exhaust_reconnect_attempts():
    peer = Peer([([b"[1,2]\n"], False)])
    port = await peer.start()

    buffer = RecordBuffer()
    consumer = StreamConsumer(
        "127.0.0.1",
        port,
        buffer,
        reconnect_backoff_ms=0,
        max_reconnect_attempts=2,
    )
    task = asyncio.create_task(consumer.run())
    try:
        await wait_until(lambda: buffer.total_put >= 4)
    finally:
        await consumer.stop()
        await asyncio.wait_for(task, timeout=2.0)
        await peer.close()

    # every successful connect starts a fresh attempt budget
    assert peer.connections > 3
    assert consumer.metrics.connection_errors == 0
    assert consumer.metrics.reconnect_count >= 3


@pytest.mark.asyncio
async def test_connect_timeout_counts_as_connection_error(monkeypatch):
    async def never_connects(host, port):
        await asyncio.sleep(3600)

    monkeypatch.setattr(asyncio, "open_connection", never_connects)

    consumer = StreamConsumer(
        "127.0.0.1",
        5555,
        RecordBuffer(),
        connect_timeout=0.05,
        reconnect_backoff_ms=0,
        max_reconnect_attempts=1,
    )
    await asyncio.wait_for(consumer.run(), timeout=5.0)

    assert consumer.metrics.connection_errors == 2
    assert consumer.metrics.reconnect_count == 1
    assert not consumer.connected


def test_connect_timeout_must_be_positive():
    with pytest.raises(ValueError):
        StreamConsumer("127.0.0.1", 5555, RecordBuffer(), connect_timeout=0)
