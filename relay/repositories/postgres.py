from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

import asyncpg

from relay.domain.errors import DataSourceError
from relay.domain.models import Row

logger = logging.getLogger("relay")


async def _init_connection(conn: Any) -> None:
    await conn.set_type_codec(
        "json",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


@dataclass
class AsyncpgDataSource:
    """Data source gateway with one fresh connection per statement.

    No pooling and no retry: a failed connect or statement is surfaced as
    DataSourceError and the connection is closed either way.
    """

    dsn: str
    connect_timeout_seconds: float = 10.0
    command_timeout_seconds: float | None = 60.0

    async def execute(self, query: str) -> list[Row]:
        try:
            conn = await asyncpg.connect(
                dsn=self.dsn,
                timeout=self.connect_timeout_seconds,
                command_timeout=self.command_timeout_seconds,
            )
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError, TimeoutError) as exc:
            logger.error("data source connection failed", extra={"error": repr(exc)})
            raise DataSourceError(f"cannot connect to data source: {exc}") from exc

        try:
            await _init_connection(conn)
            records = await conn.fetch(query)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
            logger.error("data source query failed", extra={"error": repr(exc)})
            raise DataSourceError(f"query failed: {exc}") from exc
        finally:
            await conn.close()

        return [dict(record) for record in records]
