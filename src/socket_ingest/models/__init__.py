"""
Data Models
===========

Models:
    - Record: Decoded (timestamp, value) pair, original text preserved
"""

from socket_ingest.models.record import Record

__all__ = [
    "Record",
]
