"""
Storage Module
==============

Persistence of decoded records.

    - build_values_table: SQLAlchemy table for (timestamp, value) rows
    - RecordSink: Async SQL sink (insert one record, log failures)
    - RecordWriter: Background task draining the RecordBuffer into the sink
"""

from socket_ingest.storage.tables import DEFAULT_TABLE_NAME, build_values_table
from socket_ingest.storage.sink import RecordSink
from socket_ingest.storage.writer import RecordWriter


__all__ = [
    "DEFAULT_TABLE_NAME",
    "build_values_table",
    "RecordSink",
    "RecordWriter",
]
