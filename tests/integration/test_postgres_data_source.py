from __future__ import annotations

import asyncio
import os

import pytest

from relay.domain.errors import DataSourceError
from relay.repositories.postgres import AsyncpgDataSource


def require_postgres() -> str:
    dsn = os.getenv("TEST_DATABASE_URL")
    if not dsn:
        pytest.skip("TEST_DATABASE_URL is not set")
    return dsn


@pytest.mark.integration
def test_execute_returns_rows_as_dicts() -> None:
    source = AsyncpgDataSource(dsn=require_postgres())

    rows = asyncio.run(source.execute("SELECT 1 AS one, 'x'::text AS label, '{\"k\": 2}'::jsonb AS payload"))

    assert rows == [{"one": 1, "label": "x", "payload": {"k": 2}}]


@pytest.mark.integration
def test_execute_wraps_statement_errors() -> None:
    source = AsyncpgDataSource(dsn=require_postgres())

    with pytest.raises(DataSourceError, match="query failed"):
        asyncio.run(source.execute("SELECT * FROM relay_table_that_does_not_exist"))


@pytest.mark.integration
def test_execute_wraps_connection_errors() -> None:
    source = AsyncpgDataSource(dsn="postgresql://relay@127.0.0.1:1/warehouse", connect_timeout_seconds=2)

    with pytest.raises(DataSourceError, match="cannot connect"):
        asyncio.run(source.execute("SELECT 1"))
