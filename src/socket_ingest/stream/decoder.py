"""
Frame Decoder
=============

Stateful byte-to-record tokenizer for the bracket-delimited peer protocol.

Wire format:
    [1468009895549670789,397807]
    [1468009895567246398,758675]

Chunks arrive with arbitrary boundaries. The decoder carries its
state (IDLE / IN_FRAME plus the bytes of the open frame) across feed()
calls, so feeding a stream in any partition yields the same records as
feeding it whole.

State machine:
    IDLE     --'['--> IN_FRAME
    IN_FRAME --']'--> IDLE      (emits candidate payload)
    IN_FRAME --'['--> IN_FRAME  (no reset, '[' kept as payload byte)

Design Rules:
    - Owns no I/O
    - Never raises for malformed data; invalid frames are logged and dropped
    - An open frame is discarded (not flushed) on close()
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from socket_ingest.models.record import Record
from socket_ingest.stream.validation import RecordValidator


logger = logging.getLogger(__name__)


FRAME_OPEN = ord("[")
FRAME_CLOSE = ord("]")


class DecoderState(str, Enum):
    """Decoder state machine states."""

    IDLE = "IDLE"
    IN_FRAME = "IN_FRAME"


class DecoderMetrics:
    """Counters for decoder observability."""

    __slots__ = (
        "bytes_fed",
        "records_emitted",
        "frames_rejected",
        "nested_opens",
        "oversize_frames",
        "unterminated_frames",
    )

    def __init__(self) -> None:
        self.bytes_fed: int = 0
        self.records_emitted: int = 0
        self.frames_rejected: int = 0
        self.nested_opens: int = 0
        self.oversize_frames: int = 0
        self.unterminated_frames: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "bytes_fed": self.bytes_fed,
            "records_emitted": self.records_emitted,
            "frames_rejected": self.frames_rejected,
            "nested_opens": self.nested_opens,
            "oversize_frames": self.oversize_frames,
            "unterminated_frames": self.unterminated_frames,
        }


class FrameDecoder:
    """
    Chunk-boundary-safe decoder for `[timestamp,value]` frames.

    One instance per connection. Chunks must be fed sequentially.

    Attributes:
        validator: Payload validator applied to each closed frame
        max_frame_bytes: Abandon an open frame larger than this (0 = unlimited)
        metrics: Decoder counters

    Example:
        decoder = FrameDecoder()
        decoder.feed(b"[1468009895549670789,39")   # []
        decoder.feed(b"7807]\\n")                   # [Record(...)]
    """

    def __init__(
        self,
        validator: Optional[RecordValidator] = None,
        on_record: Optional[Callable[[Record], None]] = None,
        max_frame_bytes: int = 0,
        metrics: Optional[DecoderMetrics] = None,
    ) -> None:
        """
        Initialize frame decoder.

        Args:
            validator: Payload validator (legacy mode if omitted)
            on_record: Called synchronously, in order, for each emitted record
            max_frame_bytes: Payload size limit for an open frame (0 = unlimited)
            metrics: Shared counters, so totals survive a decoder being replaced
        """
        if max_frame_bytes < 0:
            raise ValueError("max_frame_bytes must be >= 0")

        self.validator = validator or RecordValidator()
        self.on_record = on_record
        self.max_frame_bytes = max_frame_bytes
        self.metrics = metrics if metrics is not None else DecoderMetrics()

        self._state = DecoderState.IDLE
        self._buffer = bytearray()

    @property
    def state(self) -> DecoderState:
        """Current state machine state."""
        return self._state

    @property
    def in_frame(self) -> bool:
        """Whether a frame is currently open."""
        return self._state is DecoderState.IN_FRAME

    @property
    def pending_bytes(self) -> int:
        """Bytes accumulated for the currently open frame."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[Record]:
        """
        Consume one chunk and return the records it completed.

        Args:
            chunk: Raw bytes from the transport

        Returns:
            Records in the order their closing ']' was seen

        Raises:
            TypeError: If chunk is not a bytes-like object
        """
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"chunk must be bytes-like, got {type(chunk).__name__}"
            )

        data = bytes(chunk)
        records: List[Record] = []
        buffer = self._buffer

        for byte in data:
            if self._state is DecoderState.IN_FRAME:
                buffer.append(byte)

            if byte == FRAME_OPEN:
                if self._state is DecoderState.IN_FRAME:
                    self.metrics.nested_opens += 1
                    logger.debug("'[' inside open frame, kept as payload byte")
                self._state = DecoderState.IN_FRAME

            elif byte == FRAME_CLOSE:
                self._state = DecoderState.IDLE
                # Buffer ends with the ']' just appended
                payload = bytes(buffer[:-1]).decode("ascii", errors="replace")
                buffer.clear()

                record = self._accept(payload)
                if record is not None:
                    records.append(record)
                    if self.on_record is not None:
                        self.on_record(record)

            if (
                self.max_frame_bytes
                and self._state is DecoderState.IN_FRAME
                and len(buffer) > self.max_frame_bytes
            ):
                self.metrics.oversize_frames += 1
                logger.warning(
                    f"Open frame exceeded {self.max_frame_bytes} bytes, abandoning"
                )
                buffer.clear()
                self._state = DecoderState.IDLE

        self.metrics.bytes_fed += len(data)
        return records

    def close(self) -> None:
        """
        Tear down the decoder, discarding any unterminated frame.

        The partial frame is NOT emitted; the rest of it never arrived.
        """
        if self._state is DecoderState.IN_FRAME:
            self.metrics.unterminated_frames += 1
            logger.debug(
                f"Discarding unterminated frame ({len(self._buffer)} bytes)"
            )
        self._buffer.clear()
        self._state = DecoderState.IDLE

    def _accept(self, payload: str) -> Optional[Record]:
        """Validate a candidate payload and build its record."""
        if not self.validator.is_valid(payload):
            self.metrics.frames_rejected += 1
            logger.warning(f"Fragment is broken, skipping: {payload!r}")
            return None

        self.metrics.records_emitted += 1
        return Record.from_payload(payload)
