"""
Record Sink
===========

Persists decoded records into a SQL table.

The sink is the last stage of the pipeline:
    - Converts a Record to a typed row (timestamp, value)
    - Inserts it with an async SQLAlchemy engine
    - Logs and counts failures; nothing is retried

Backends:
    - PostgreSQL via asyncpg in production
    - SQLite via aiosqlite in tests and local runs

Example:
    sink = RecordSink("postgresql+asyncpg://user:pw@localhost/db")
    await sink.init_schema()
    await sink.persist(Record("1468009895549670789", "397807"))
    await sink.close()
"""

import logging

from sqlalchemy import MetaData, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from socket_ingest.models.record import Record
from socket_ingest.storage.tables import DEFAULT_TABLE_NAME, build_values_table


logger = logging.getLogger(__name__)


class RecordSink:
    """
    SQL sink for decoded records.

    Attributes:
        table: SQLAlchemy table records are inserted into
        persisted: Number of rows inserted
        failed: Number of records that could not be persisted
    """

    def __init__(self, url: str, table_name: str = DEFAULT_TABLE_NAME) -> None:
        """
        Initialize the sink and its engine.

        Args:
            url: SQLAlchemy async database URL
            table_name: Destination table name
        """
        self._engine: AsyncEngine = create_async_engine(
            url,
            future=True,
            pool_pre_ping=True,
        )
        self._metadata = MetaData()
        self.table = build_values_table(table_name, self._metadata)

        self.persisted: int = 0
        self.failed: int = 0

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def table_name(self) -> str:
        return self.table.name

    async def init_schema(self) -> bool:
        """
        Create the destination table if it does not exist.

        Returns:
            True on success. Errors are logged, not raised, so the
            service can still start against a pre-provisioned table.
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(self._metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create table {self.table_name}: {e}")
            return False

        logger.info(f"Table ready: {self.table_name}")
        return True

    async def persist(self, record: Record) -> bool:
        """
        Insert one record.

        Args:
            record: Decoded record

        Returns:
            True if the row was inserted, False if it was dropped.
        """
        try:
            row = record.to_row()
        except ValueError as e:
            self.failed += 1
            logger.error(f"Cannot convert {record!r} to a row: {e}")
            return False

        logger.debug(f"Inserting into {self.table_name}: {row}")

        try:
            async with self._engine.begin() as conn:
                await conn.execute(insert(self.table).values(**row))
        except (SQLAlchemyError, OverflowError) as e:
            self.failed += 1
            logger.error(f"Insert into {self.table_name} failed: {e}")
            return False

        self.persisted += 1
        return True

    async def close(self) -> None:
        """Dispose the engine and its connection pool."""
        await self._engine.dispose()

    def metrics(self) -> dict:
        return {
            "table": self.table_name,
            "persisted": self.persisted,
            "failed": self.failed,
        }
