"""
This file contains tests for the Statement class.
Functions:
- test_query_columns: execute() of a query returns the column descriptors.
- test_bind_by_name_and_position: Named and positional binds reach the server.
- test_failed_bind_keeps_other_binds: A rejected bind leaves earlier binds in place.
- test_dml_rowcount: execute() of DML returns the affected row count.
- test_parse_error_offset: Server errors carry the parse error offset.
- test_out_binds: OUT and IN OUT parameters of PL/SQL blocks.
- test_use_after_close: Closed statements raise InterfaceError.
"""

import datetime
from decimal import Decimal

import pytest

from oracle_python import BindSpec, Direction, StatementType
from oracle_python.constants import SQLT, Attribute, DescriptorType
from oracle_python.exceptions import (
    BindError,
    ConversionError,
    ErrorKind,
    ExecuteError,
    FetchError,
    InterfaceError,
    ProgrammingError,
)
from oracle_python.helpers import get_settings
from oracle_python.statement import _bind_key
from oracle_python.values import Null, OracleType, Text, Timestamp, TimeZone

from fake_oci import COMMIT_ON_SUCCESS, Column


@pytest.fixture
def dual(fake_oci):
    fake_oci.add_query("select * from dual", [Column("DUMMY", SQLT.CHR, 1, char_size=1)], [("X",)])


def test_query_columns(db_connection, dual):
    stmt = db_connection.prepare("select * from dual")
    assert stmt.statement_type is StatementType.SELECT
    assert stmt.is_query
    assert stmt.columns is None
    assert stmt.rowcount == -1

    columns = stmt.execute()

    assert [c.name for c in columns] == ["DUMMY"]
    assert columns[0].type is OracleType.VARCHAR
    assert stmt.description == [("DUMMY", OracleType.VARCHAR, None, 1, None, None, True)]
    assert stmt.result_set().fetchone() == ["X"]
    assert stmt.rowcount == 1
    stmt.close()


def test_description_lowercase(db_connection, dual):
    get_settings().lowercase = True
    stmt = db_connection.execute("select * from dual")
    assert stmt.description[0][0] == "dummy"
    stmt.close()


def test_prefetch_rows_set(db_connection, fake_oci):
    get_settings().prefetch_rows = 50
    stmt = db_connection.prepare("select * from dual")
    assert fake_oci.objects[stmt._stmthp.value].attrs[Attribute.PREFETCH_ROWS] == 50
    stmt.close()


@pytest.mark.parametrize(
    "parameter, key",
    [("name", "NAME"), (":name", "NAME"), ('"Mixed"', '"Mixed"'), (3, 3)],
)
def test_bind_key(parameter, key):
    assert _bind_key(parameter) == key


@pytest.mark.parametrize("parameter", [0, -1, True, "", ":", 1.5, None])
def test_bind_key_invalid(parameter):
    with pytest.raises(ProgrammingError) as excinfo:
        _bind_key(parameter)
    assert excinfo.value.kind is ErrorKind.BIND_MISMATCH


def test_bind_by_name_and_position(db_connection):
    stmt = db_connection.prepare("select :a, :b from dual")
    stmt.bind("a", 42)
    stmt.bind(2, "text")
    stmt.execute()
    assert stmt.result_set().fetchone() == [42, "text"]
    stmt.close()


def test_execute_params(db_connection):
    with db_connection.execute("select :x, :y from dual", {"x": 1, "y": "two"}) as stmt:
        assert stmt.result_set().fetchall() == [[1, "two"]]
    with db_connection.execute("select :x, :y from dual", [Decimal("1.5"), None]) as stmt:
        assert stmt.result_set().fetchall() == [[Decimal("1.5"), None]]


def test_execute_params_invalid_type(db_connection):
    stmt = db_connection.prepare("select :x from dual")
    with pytest.raises(ProgrammingError):
        stmt.execute(42)
    stmt.close()


def test_unknown_bind_name(db_connection):
    stmt = db_connection.prepare("select :a from dual")
    with pytest.raises(BindError) as excinfo:
        stmt.bind("zzz", 1)
    assert excinfo.value.code == 1036
    assert excinfo.value.kind is ErrorKind.BIND_MISMATCH
    stmt.close()


def test_missing_bind(db_connection):
    stmt = db_connection.prepare("select :a, :b from dual")
    stmt.bind("a", 1)
    with pytest.raises(ExecuteError) as excinfo:
        stmt.execute()
    assert excinfo.value.code == 1008
    assert excinfo.value.kind is ErrorKind.BIND_MISMATCH
    stmt.close()


def test_failed_bind_keeps_other_binds(db_connection):
    stmt = db_connection.prepare("select :a, :b from dual")
    stmt.bind("a", "kept")
    with pytest.raises(BindError):
        stmt.bind("b", object())
    with pytest.raises(BindError):
        stmt.bind("b", "x", OracleType.NUMBER)
    stmt.bind("b", 7)
    stmt.execute()
    assert stmt.result_set().fetchone() == ["kept", 7]
    stmt.close()


def test_rebind_replaces_value(db_connection):
    stmt = db_connection.prepare("select :a from dual")
    stmt.bind("a", 1)
    stmt.execute()
    assert stmt.result_set().fetchone() == [1]
    stmt.bind(":A", 2)
    stmt.execute()
    assert stmt.result_set().fetchone() == [2]
    stmt.close()


def test_out_bind_requires_declared_type(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    with pytest.raises(BindError) as excinfo:
        stmt.bind("b", None, direction=Direction.OUT)
    assert excinfo.value.kind is ErrorKind.TYPE_MISMATCH
    stmt.close()


def test_long_out_bind_rejected(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    with pytest.raises(BindError):
        stmt.bind("b", None, OracleType.LONG, Direction.OUT)
    stmt.close()


def test_number_precision_checked_at_bind(db_connection):
    stmt = db_connection.prepare("select :a from dual")
    with pytest.raises(ConversionError):
        stmt.bind("a", Decimal("1234.5"), BindSpec(OracleType.NUMBER, precision=4, scale=1))
    stmt.close()


def test_dml_rowcount(db_connection, fake_oci):
    fake_oci.dml_row_counts["update emp set sal = sal * 1.1"] = 14
    stmt = db_connection.prepare("update emp set sal = sal * 1.1")
    assert stmt.statement_type is StatementType.UPDATE
    assert not stmt.is_query
    assert stmt.execute() == 14
    assert stmt.rowcount == 14
    assert stmt.columns is None
    assert fake_oci.executed[-1][2] == 0
    assert fake_oci.commits == 0
    stmt.close()


def test_autocommit_commits_dml(db_connection, fake_oci):
    db_connection.autocommit = True
    stmt = db_connection.execute("delete from emp where empno = :n", {"n": 7369})
    assert stmt.rowcount == 1
    assert fake_oci.executed[-1][2] & COMMIT_ON_SUCCESS
    assert fake_oci.commits == 1
    stmt.close()


def test_autocommit_skips_queries(db_connection, fake_oci, dual):
    db_connection.autocommit = True
    db_connection.execute("select * from dual").close()
    assert fake_oci.executed[-1][2] == 0


def test_parse_error_offset(db_connection, fake_oci):
    fake_oci.add_statement_error("select * fron emp", 923, "FROM keyword not found where expected", offset=9)
    stmt = db_connection.prepare("select * fron emp")
    with pytest.raises(ExecuteError) as excinfo:
        stmt.execute()
    assert excinfo.value.kind is ErrorKind.SYNTAX_ERROR
    assert "(at offset 9)" in str(excinfo.value)
    assert "ORA-00923" in str(excinfo.value)
    stmt.close()


def test_missing_table(db_connection):
    with pytest.raises(ExecuteError) as excinfo:
        db_connection.execute("select * from missing_table")
    assert excinfo.value.code == 942
    assert excinfo.value.kind is ErrorKind.OBJECT_NOT_FOUND
    assert "(at offset 14)" in str(excinfo.value)


def test_failed_execute_closes_statement(db_connection, fake_oci):
    with pytest.raises(ExecuteError):
        db_connection.execute("select * from missing_table")
    assert fake_oci.released_statements == 1


def test_result_set_requires_query(db_connection, fake_oci):
    stmt = db_connection.prepare("select * from dual")
    with pytest.raises(ProgrammingError) as excinfo:
        stmt.result_set()
    assert excinfo.value.kind is ErrorKind.FETCH_OUT_OF_SEQUENCE
    stmt.close()

    stmt = db_connection.execute("insert into emp (empno) values (1)")
    with pytest.raises(ProgrammingError):
        stmt.result_set()
    stmt.close()


def test_out_binds(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", "hello")
    stmt.bind("b", None, BindSpec(OracleType.VARCHAR, 100), Direction.OUT)
    assert stmt.execute() == 0
    out = stmt.out_value("b")
    assert out == Text.from_str("hello")
    assert out.value == "hello"
    stmt.close()


def test_in_out_bind(db_connection):
    stmt = db_connection.prepare("begin :v := 'changed'; end;")
    stmt.bind("v", "original", BindSpec(OracleType.VARCHAR, 20), Direction.IN_OUT)
    assert stmt.out_value("v").value == "original"
    stmt.execute()
    assert stmt.out_value("v").value == "changed"
    stmt.close()


def test_out_bind_null(db_connection):
    stmt = db_connection.prepare("begin :v := null; end;")
    stmt.bind("v", "set", BindSpec(OracleType.VARCHAR, 20), Direction.IN_OUT)
    stmt.execute()
    assert stmt.out_value("v") == Null(OracleType.VARCHAR)
    stmt.close()


def test_out_bind_number(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", 42)
    stmt.bind("b", None, OracleType.NUMBER, Direction.OUT)
    stmt.execute()
    assert stmt.out_value("b").to_python() == 42
    stmt.close()


def test_out_bind_timestamp(db_connection, fake_oci):
    value = datetime.datetime(2024, 3, 1, 8, 15, 30, 250000)
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", value)
    stmt.bind("b", None, OracleType.TIMESTAMP, Direction.OUT)
    stmt.execute()
    assert stmt.out_value("b").to_python() == value
    stmt.close()
    assert fake_oci.live("descriptor", DescriptorType.TIMESTAMP) == 0


def test_out_bind_truncated(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", "x" * 50)
    stmt.bind("b", None, BindSpec(OracleType.VARCHAR, 10), Direction.OUT)
    stmt.execute()
    with pytest.raises(FetchError) as excinfo:
        stmt.out_value("b")
    assert excinfo.value.kind is ErrorKind.VALUE_TRUNCATED
    assert excinfo.value.code == 1406
    stmt.close()


def test_out_value_not_bound(db_connection):
    stmt = db_connection.prepare("begin :b := :a; end;")
    with pytest.raises(ProgrammingError):
        stmt.out_value("b")
    stmt.close()


def test_invalid_time_zone_frees_descriptor(db_connection, fake_oci):
    stmt = db_connection.prepare("select :a from dual")
    with pytest.raises(BindError):
        stmt.bind("a", Timestamp(2024, 1, 1, zone=TimeZone.named("Mars/Olympus_Mons")))
    assert fake_oci.live("descriptor") == 0
    stmt.close()


def test_re_execute_exhausts_previous_result_set(db_connection, dual):
    stmt = db_connection.prepare("select * from dual")
    stmt.execute()
    first = stmt.result_set()
    stmt.execute()
    assert first.exhausted
    assert first.fetchone() is None
    assert stmt.result_set() is not first
    assert stmt.result_set().fetchone() == ["X"]
    stmt.close()


def test_close_idempotent(db_connection, fake_oci):
    stmt = db_connection.prepare("select * from dual")
    stmt.close()
    stmt.close()
    assert stmt.closed
    assert fake_oci.released_statements == 1
    assert "closed" in repr(stmt)


def test_use_after_close(db_connection, dual):
    stmt = db_connection.execute("select * from dual")
    result_set = stmt.result_set()
    stmt.close()
    assert result_set.exhausted
    for call in (stmt.execute, stmt.result_set, lambda: stmt.bind("a", 1), result_set.fetchone):
        with pytest.raises(InterfaceError) as excinfo:
            call()
        assert excinfo.value.kind is ErrorKind.STATEMENT_CLOSED


def test_bind_descriptors_freed_on_close(db_connection, fake_oci):
    stmt = db_connection.prepare("select :a, :b from dual")
    stmt.bind("a", datetime.datetime(2024, 1, 1, 0, 0, 0, 1))
    stmt.bind("b", datetime.timedelta(days=1))
    assert fake_oci.live("descriptor") == 2
    stmt.close()
    assert fake_oci.live("descriptor") == 0


def test_statement_on_closed_connection(db_connection):
    stmt = db_connection.prepare("select * from dual")
    db_connection.close()
    assert stmt.closed
    with pytest.raises(InterfaceError):
        stmt.execute()
