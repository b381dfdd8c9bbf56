"""
Table Definitions
=================

SQLAlchemy Core table for persisted stream values.

Schema:
    timestamp  BIGINT  NOT NULL   -- nanoseconds since epoch
    value      INTEGER NOT NULL   -- [0, 1000000)

The table is append-only; no primary key is declared.
"""

from typing import Optional

from sqlalchemy import BigInteger, Column, Integer, MetaData, Table


DEFAULT_TABLE_NAME = "socket_stream_values"


def build_values_table(
    name: str = DEFAULT_TABLE_NAME,
    metadata: Optional[MetaData] = None,
) -> Table:
    """
    Build the values table bound to the given metadata.

    The name is configurable, so the table is built per sink rather
    than declared at module level.
    """
    if metadata is None:
        metadata = MetaData()
    return Table(
        name,
        metadata,
        Column("timestamp", BigInteger, nullable=False),
        Column("value", Integer, nullable=False),
    )
