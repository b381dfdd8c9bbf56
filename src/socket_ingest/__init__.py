"""
SocketIngest
============

Ingests `[timestamp,value]` records from a TCP peer and stores them in SQL.

The peer emits ASCII records such as:

    [1468009895549670789,397807]
    [1468009895567246398,758675]

Components:
    - stream: Frame decoder, validator, record buffer and TCP consumer
    - storage: Values table, SQL sink and background writer
    - config: YAML + environment configuration and logging setup
    - main: FastAPI service with health and metrics endpoints

Example:
    from socket_ingest.stream import FrameDecoder

    decoder = FrameDecoder()
    records = decoder.feed(b"[1468009895549670789,397807]\\n")
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
