"""
Record Data Model
=================

Internal record representation for the ingestion pipeline.

A Record is the payload of one validated `[timestamp,value]` frame.
It is the interface between the frame decoder and the record sink.

Design Rules:
    - Preserves the original text of both fields
    - Does NOT parse numbers at decode time
    - Typed conversion happens only in to_row(), on the sink side
"""

from dataclasses import dataclass


# Column bounds: timestamp is BIGINT, value is INTEGER
TIMESTAMP_MIN, TIMESTAMP_MAX = -(2 ** 63), 2 ** 63 - 1
VALUE_MIN, VALUE_MAX = -(2 ** 31), 2 ** 31 - 1


@dataclass(frozen=True, slots=True)
class Record:
    """
    Decoded (timestamp, value) pair from the peer stream.

    Attributes:
        timestamp_text: Timestamp field as received (nanoseconds since epoch)
        value_text: Value field as received (expected range [0, 1000000))
    """

    timestamp_text: str
    value_text: str

    @classmethod
    def from_payload(cls, payload: str) -> "Record":
        """
        Build a record from a frame payload.

        The payload is split on commas; the first component is the
        timestamp and the second the value. A payload with a single
        component yields an empty value_text.
        """
        fields = payload.split(",")
        value_text = fields[1] if len(fields) > 1 else ""
        return cls(timestamp_text=fields[0], value_text=value_text)

    def to_row(self) -> dict:
        """
        Convert to a typed row for persistence.

        Raises:
            ValueError: If either field is not an integer or does not
                fit its column
        """
        timestamp = int(self.timestamp_text)
        value = int(self.value_text)

        if not TIMESTAMP_MIN <= timestamp <= TIMESTAMP_MAX:
            raise ValueError(f"timestamp {timestamp} out of BIGINT range")
        if not VALUE_MIN <= value <= VALUE_MAX:
            raise ValueError(f"value {value} out of INTEGER range")

        return {"timestamp": timestamp, "value": value}

    def __repr__(self) -> str:
        return f"Record({self.timestamp_text},{self.value_text})"
