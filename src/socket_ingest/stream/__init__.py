"""
Stream Module
=============

Byte stream consumption and record decoding components.

This module provides the ingestion layer for SocketIngest:
    - FrameDecoder: Chunk-boundary-safe `[timestamp,value]` decoder
    - RecordValidator: Payload accept/reject predicate (legacy or strict)
    - RecordBuffer: Bounded hand-off queue (drops oldest on overflow)
    - StreamConsumer: TCP client with reconnection

Example:
    from socket_ingest.stream import RecordBuffer, StreamConsumer

    buffer = RecordBuffer(maxsize=1000)
    consumer = StreamConsumer("localhost", 5555, buffer)

    task = asyncio.create_task(consumer.run())

    while True:
        record = await buffer.get()
        persist(record)
"""

from socket_ingest.stream.validation import RecordValidator, ValidationMode
from socket_ingest.stream.decoder import DecoderMetrics, DecoderState, FrameDecoder
from socket_ingest.stream.buffer import RecordBuffer
from socket_ingest.stream.consumer import ConsumerMetrics, StreamConsumer


__all__ = [
    "RecordValidator",
    "ValidationMode",
    "DecoderMetrics",
    "DecoderState",
    "FrameDecoder",
    "RecordBuffer",
    "ConsumerMetrics",
    "StreamConsumer",
]
