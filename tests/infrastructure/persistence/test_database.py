"""Tests for remote call bounding and error translation"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from shardcatalog.domain.exceptions import MappingNotFoundError
from shardcatalog.infrastructure.exceptions import OperationTimeoutError, TransportError
from shardcatalog.infrastructure.persistence.database import connect_args_for, run_remote


async def test_run_remote_returns_result():
    async def operation():
        return 42

    assert await run_remote(operation, target="store", name="op", timeout=1) == 42


async def test_run_remote_times_out():
    """
    GIVEN an operation slower than its bound
    WHEN running it remotely
    THEN OperationTimeoutError is raised and marked retryable
    """

    async def operation():
        await asyncio.sleep(5)

    with pytest.raises(OperationTimeoutError) as exc_info:
        await run_remote(operation, target="store", name="slow", timeout=0.05)

    assert exc_info.value.retryable is True
    assert exc_info.value.details["operation"] == "slow"


@pytest.mark.parametrize(
    "error",
    [OperationalError("SELECT 1", {}, Exception("refused")), ConnectionRefusedError("refused")],
)
async def test_run_remote_translates_driver_errors(error):
    async def operation():
        raise error

    with pytest.raises(TransportError) as exc_info:
        await run_remote(operation, target="store", name="op", timeout=1)

    assert exc_info.value.__cause__ is error


async def test_run_remote_passes_domain_errors_through():
    async def operation():
        raise MappingNotFoundError("0x80001388")

    with pytest.raises(MappingNotFoundError):
        await run_remote(operation, target="store", name="op", timeout=1)


def test_postgres_connect_args_require_tls():
    args = connect_args_for(
        "postgresql+asyncpg://u:p@host/db", connect_timeout=15, query_timeout=30
    )

    assert args["timeout"] == 15
    assert args["command_timeout"] == 30
    assert args["ssl"] == "require"


def test_postgres_connect_args_without_tls():
    args = connect_args_for(
        "postgresql+asyncpg://u:p@host/db",
        connect_timeout=15,
        query_timeout=30,
        require_encryption=False,
    )

    assert "ssl" not in args


def test_sqlite_connect_args():
    assert connect_args_for(
        "sqlite+aiosqlite:///catalog.db", connect_timeout=5, query_timeout=30
    ) == {"timeout": 5}
