"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module runs blocking OCI calls off the caller's thread.

NativeCallExecutor owns one worker thread per connection, so calls on a connection run
one at a time and in submission order, as OCI requires for handles of a non-THREADED
environment. AsyncConnection, AsyncStatement and AsyncResultSet expose the same
operations as coroutines through asyncio.wrap_future.

Example:
    async with await AsyncConnection.connect(env, params) as conn:
        stmt = await conn.execute("select * from dual")
        rows = await stmt.result_set().fetchall()
"""

import asyncio
import concurrent.futures
import itertools
from typing import Any, Callable, List, Optional

from oracle_python.constants import Direction
from oracle_python.exceptions import ErrorKind, InterfaceError
from oracle_python.helpers import log
from oracle_python.row import Row

_executor_ids = itertools.count(1)


class NativeCallExecutor:
    """A single worker thread running native calls in submission order."""

    def __init__(self) -> None:
        self._pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"oracle_python-{next(_executor_ids)}",
        )
        self._shutdown = False

    def submit(self, fn: Callable, *args, **kwargs) -> concurrent.futures.Future:
        """
        Queue a call.

        Raises:
            InterfaceError: The executor has been shut down.
        """
        if self._shutdown:
            raise InterfaceError(driver_error="Executor is shut down", kind=ErrorKind.HANDLE_CLOSED)
        return self._pool.submit(fn, *args, **kwargs)

    async def run(self, fn: Callable, *args, **kwargs) -> Any:
        """Queue a call and await its result on the running event loop."""
        return await asyncio.wrap_future(self.submit(fn, *args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting calls; queued calls still run."""
        if not self._shutdown:
            self._shutdown = True
            self._pool.shutdown(wait=wait)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown


class AsyncResultSet:
    def __init__(self, result_set, executor: NativeCallExecutor) -> None:
        self._result_set = result_set
        self._executor = executor

    @property
    def columns(self):
        return self._result_set.columns

    @property
    def description(self):
        return self._result_set.description

    async def fetchone(self) -> Optional[Row]:
        return await self._executor.run(self._result_set.fetchone)

    async def fetchmany(self, size: Optional[int] = None) -> List[Row]:
        return await self._executor.run(self._result_set.fetchmany, size)

    async def fetchall(self) -> List[Row]:
        return await self._executor.run(self._result_set.fetchall)

    async def fetch_arrow_table(self):
        return await self._executor.run(self._result_set.fetch_arrow_table)

    def __aiter__(self) -> "AsyncResultSet":
        return self

    async def __anext__(self) -> Row:
        row = await self.fetchone()
        if row is None:
            raise StopAsyncIteration
        return row


class AsyncStatement:
    def __init__(self, statement, executor: NativeCallExecutor) -> None:
        self._statement = statement
        self._executor = executor

    @property
    def statement(self):
        """The wrapped Statement."""
        return self._statement

    @property
    def columns(self):
        return self._statement.columns

    @property
    def description(self):
        return self._statement.description

    @property
    def statement_type(self):
        return self._statement.statement_type

    @property
    def rowcount(self) -> int:
        return self._statement.rowcount

    async def bind(self, parameter, value, declared=None, direction: Direction = Direction.IN) -> None:
        await self._executor.run(self._statement.bind, parameter, value, declared, direction)

    async def execute(self, params: Any = None):
        return await self._executor.run(self._statement.execute, params)

    def result_set(self) -> AsyncResultSet:
        return AsyncResultSet(self._statement.result_set(), self._executor)

    async def out_value(self, parameter):
        return await self._executor.run(self._statement.out_value, parameter)

    async def close(self) -> None:
        await self._executor.run(self._statement.close)

    async def __aenter__(self) -> "AsyncStatement":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()


class AsyncConnection:
    """
    Coroutine interface of a Connection. Every call is queued on the connection's own
    worker thread, except break_(), which must reach the server while a call is running.
    """

    def __init__(self, connection, executor: Optional[NativeCallExecutor] = None) -> None:
        self._connection = connection
        self._executor = executor or NativeCallExecutor()

    @classmethod
    async def connect(cls, environment, params) -> "AsyncConnection":
        """Attach and log on in a worker thread."""
        executor = NativeCallExecutor()
        try:
            connection = await executor.run(environment.connect, params)
        except BaseException:
            executor.shutdown(wait=False)
            raise
        return cls(connection, executor)

    @property
    def connection(self):
        """The wrapped Connection."""
        return self._connection

    @property
    def autocommit(self) -> bool:
        return self._connection.autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        self._connection.autocommit = value

    async def prepare(self, sql: str) -> AsyncStatement:
        statement = await self._executor.run(self._connection.prepare, sql)
        return AsyncStatement(statement, self._executor)

    async def execute(self, sql: str, params: Any = None) -> AsyncStatement:
        statement = await self._executor.run(self._connection.execute, sql, params)
        return AsyncStatement(statement, self._executor)

    async def commit(self) -> None:
        await self._executor.run(self._connection.commit)

    async def rollback(self) -> None:
        await self._executor.run(self._connection.rollback)

    async def ping(self) -> None:
        await self._executor.run(self._connection.ping)

    async def server_version(self) -> str:
        return await self._executor.run(self._connection.server_version)

    async def server_version_info(self):
        return await self._executor.run(self._connection.server_version_info)

    async def current_time_offset(self):
        return await self._executor.run(self._connection.current_time_offset)

    def break_(self) -> None:
        """Interrupt the running call; it fails with a CANCELLED error."""
        self._connection.break_()

    async def close(self) -> None:
        """Close the connection, then stop its worker thread."""
        if self._executor.is_shutdown:
            return
        try:
            await self._executor.run(self._connection.close)
        finally:
            self._executor.shutdown(wait=False)
            log('debug', "Async connection closed")

    async def __aenter__(self) -> "AsyncConnection":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
