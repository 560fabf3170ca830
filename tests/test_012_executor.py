"""
This file contains tests for the worker-thread executor and the asyncio wrappers.
Functions:
- test_calls_run_in_order: Calls on one executor run one at a time, in submission order.
- test_submit_after_shutdown: A shut down executor rejects new calls.
- test_async_connection: Connect, query and close through AsyncConnection.
- test_async_errors: Driver errors propagate to the awaiting coroutine.
- test_async_connect_failure_stops_worker: A failed connect shuts its worker thread down.
- test_async_dml_and_out_bind: Row counts, OUT parameters and transaction calls through the wrappers.
"""

import asyncio
import threading

import pytest

from oracle_python import (
    AsyncConnection,
    ConnectParams,
    ConnectionState,
    Direction,
    NativeCallExecutor,
    OracleType,
    RdbmsCredentials,
)
from oracle_python import executor as executor_module
from oracle_python.constants import SQLT
from oracle_python.exceptions import ConnectError, ErrorKind, ExecuteError, InterfaceError

from fake_oci import LOCATOR, Column


def test_calls_run_in_order():
    executor = NativeCallExecutor()
    results = []
    threads = set()

    def record(value):
        threads.add(threading.get_ident())
        results.append(value)
        return value

    futures = [executor.submit(record, i) for i in range(20)]
    assert [f.result() for f in futures] == list(range(20))
    assert results == list(range(20))
    assert len(threads) == 1
    assert threading.get_ident() not in threads
    executor.shutdown()


def test_submit_after_shutdown():
    executor = NativeCallExecutor()
    executor.shutdown()
    executor.shutdown()
    assert executor.is_shutdown
    with pytest.raises(InterfaceError) as excinfo:
        executor.submit(print)
    assert excinfo.value.kind is ErrorKind.HANDLE_CLOSED


def test_run_returns_result():
    executor = NativeCallExecutor()

    async def main():
        return await executor.run(sum, [1, 2, 3])

    assert asyncio.run(main()) == 6
    executor.shutdown()


def test_async_connection(env, fake_oci, connect_params):
    fake_oci.add_query("select * from dual", [Column("DUMMY", SQLT.CHR, 1, char_size=1)], [("X",)])

    async def main():
        conn = await AsyncConnection.connect(env, connect_params)
        async with conn:
            assert conn.connection.state is ConnectionState.LOGGED_ON
            version = await conn.server_version_info()
            stmt = await conn.execute("select * from dual")
            rows = [row async for row in stmt.result_set()]
            await stmt.close()
            await conn.commit()
        return conn, version, rows

    conn, version, rows = asyncio.run(main())
    assert version == (19, 3, 0, 0, 0)
    assert rows == [["X"]]
    assert conn.connection.closed
    assert fake_oci.commits == 1


def test_async_statement(env, connect_params):
    async def main():
        async with await AsyncConnection.connect(env, connect_params) as conn:
            stmt = await conn.prepare("select :a, :b from dual")
            await stmt.bind("a", 1)
            await stmt.bind("b", "two")
            columns = await stmt.execute()
            result_set = stmt.result_set()
            row = await result_set.fetchone()
            rest = await result_set.fetchall()
            await stmt.close()
            return columns, row, rest

    columns, row, rest = asyncio.run(main())
    assert [c.name for c in columns] == ["A", "B"]
    assert row == [1, "two"]
    assert rest == []


def test_async_connect_failure(env):
    async def main():
        await AsyncConnection.connect(env, ConnectParams(RdbmsCredentials("scott", "wrong"), LOCATOR))

    with pytest.raises(ConnectError) as excinfo:
        asyncio.run(main())
    assert excinfo.value.code == 1017


def test_async_errors(env, connect_params):
    async def main():
        async with await AsyncConnection.connect(env, connect_params) as conn:
            await conn.execute("select * from missing_table")

    with pytest.raises(ExecuteError) as excinfo:
        asyncio.run(main())
    assert excinfo.value.kind is ErrorKind.OBJECT_NOT_FOUND


def test_async_close_idempotent(env, connect_params):
    async def main():
        conn = await AsyncConnection.connect(env, connect_params)
        await conn.close()
        await conn.close()
        return conn

    conn = asyncio.run(main())
    assert conn.connection.closed


def test_async_connect_failure_stops_worker(env, monkeypatch):
    created = []

    class RecordingExecutor(executor_module.NativeCallExecutor):
        def __init__(self):
            super().__init__()
            created.append(self)

    monkeypatch.setattr(executor_module, "NativeCallExecutor", RecordingExecutor)

    async def main():
        await AsyncConnection.connect(env, ConnectParams(RdbmsCredentials("scott", "wrong"), LOCATOR))

    with pytest.raises(ConnectError):
        asyncio.run(main())
    assert len(created) == 1
    assert created[0].is_shutdown


def test_async_fetchmany(env, connect_params, fake_oci):
    fake_oci.add_query(
        "select n from numbers",
        [Column("N", SQLT.NUM, 22, precision=4, scale=0)],
        [(i,) for i in range(5)],
    )

    async def main():
        async with await AsyncConnection.connect(env, connect_params) as conn:
            stmt = await conn.execute("select n from numbers")
            result_set = stmt.result_set()
            first = await result_set.fetchmany(2)
            rest = await result_set.fetchall()
            description = result_set.description
            await stmt.close()
        return first, rest, description

    first, rest, description = asyncio.run(main())
    assert [row[0] for row in first] == [0, 1]
    assert [row[0] for row in rest] == [2, 3, 4]
    assert description[0][0] == "N"


def test_async_dml_and_out_bind(env, connect_params, fake_oci):
    fake_oci.dml_row_counts["update emp set sal = sal * 2"] = 14

    async def main():
        async with await AsyncConnection.connect(env, connect_params) as conn:
            update = await conn.execute("update emp set sal = sal * 2")
            count = update.rowcount
            await update.close()
            async with await conn.prepare("begin :b := :a; end;") as block:
                await block.bind("a", "value")
                await block.bind("b", None, OracleType.VARCHAR, Direction.OUT)
                await block.execute()
                out = await block.out_value("b")
            closed = block.statement.closed
            await conn.rollback()
            await conn.ping()
            banner = await conn.server_version()
        return count, out, closed, banner

    count, out, closed, banner = asyncio.run(main())
    assert count == 14
    assert out.to_python() == "value"
    assert closed
    assert banner.startswith("Oracle Database 19c")
    assert fake_oci.rollbacks >= 1
