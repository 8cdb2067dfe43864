import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.orm import DeclarativeBase

from shardcatalog.infrastructure.exceptions import OperationTimeoutError, TransportError

T = TypeVar("T")


# Modern SQLAlchemy 2.0 pattern
class Base(DeclarativeBase):
    """Base class for all catalog store models"""

    pass


def connect_args_for(
    url: str,
    *,
    connect_timeout: float,
    query_timeout: float,
    require_encryption: bool = True,
) -> dict[str, Any]:
    """
    Driver connect arguments bounding connection and statement time.

    asyncpg takes both bounds natively and negotiates TLS; SQLite only has a
    lock wait, the statement bound comes from run_remote().
    """
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        args: dict[str, Any] = {
            "timeout": connect_timeout,
            "command_timeout": query_timeout,
            "server_settings": {"jit": "off"},
        }
        if require_encryption:
            args["ssl"] = "require"
        return args
    if backend == "sqlite":
        return {"timeout": connect_timeout}
    return {}


def create_store_engine(
    url: str,
    *,
    connect_timeout: float,
    query_timeout: float,
    require_encryption: bool = True,
    echo: bool = False,
    **engine_kwargs: Any,
) -> AsyncEngine:
    """Create an async engine for the catalog store or a tenant shard"""
    engine = create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args_for(
            url,
            connect_timeout=connect_timeout,
            query_timeout=query_timeout,
            require_encryption=require_encryption,
        ),
        **engine_kwargs,
    )
    if engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys off unless asked per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


async def run_remote(
    operation: Callable[[], Awaitable[T]],
    *,
    target: str,
    name: str,
    timeout: float,
) -> T:
    """
    Run one remote store operation under a finite time bound.

    Timeouts and driver failures are ambiguous outcomes and surface as
    OperationTimeoutError / TransportError. Catalog domain errors raised
    by the operation itself pass through untouched.
    """
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(target, name, timeout) from e
    except (SQLAlchemyError, OSError) as e:
        raise TransportError(target, name, str(e)) from e


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    target: str,
    name: str,
    timeout: float,
) -> T:
    """
    Run work in one short transaction: commits on success, rolls back on exception.
    """

    async def operation() -> T:
        async with session_factory() as session:
            async with session.begin():
                return await work(session)

    return await run_remote(operation, target=target, name=name, timeout=timeout)
