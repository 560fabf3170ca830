"""
This file contains bind-then-fetch round trips for every supported type.
Functions:
- test_echo: A bound value comes back unchanged from "select :a from dual".
- test_national_text: NVARCHAR binds travel in the national character set.
- test_long_values: Values over the inline bind limit travel as LONG / LONG RAW.
- test_time_zones: Fixed offsets, named regions and the session zone.
- test_lob_bind: LOB locators and large text bound to LOB parameters.
- test_out_binds: OUT parameters of every descriptor and inline type.
- test_text_size_limits: Text of 1 byte up to the 4000 byte VARCHAR2 maximum.
- test_number_precision_limits: NUMBER(1) and NUMBER(38) limits, in binds and columns.
- test_column_precision_limits: TIMESTAMP(0/9) and INTERVAL DAY(0/9) TO SECOND(0/9) columns.
"""

import datetime
from decimal import Decimal

import pytest

from oracle_python import BindSpec, Direction, Lob
from oracle_python.constants import SQLT
from oracle_python.exceptions import BindError, ConversionError
from oracle_python.values import (
    Float32,
    IntervalYearMonth,
    OracleType,
    Raw,
    RowId,
    Timestamp,
    TimeZone,
    ZoneKind,
)

from fake_oci import Column, DateTimeState, IntervalState


def _echo(connection, value, declared=None):
    stmt = connection.prepare("select :a from dual")
    stmt.bind("a", value, declared)
    stmt.execute()
    column = stmt.columns[0]
    row = stmt.result_set().fetchone()
    stmt.close()
    return column, row


@pytest.mark.parametrize(
    "value, oracle_type",
    [
        ("plain text", OracleType.VARCHAR),
        ("Größe 大きさ", OracleType.VARCHAR),
        ("", OracleType.VARCHAR),
        (0, OracleType.NUMBER),
        (42, OracleType.NUMBER),
        (-7, OracleType.NUMBER),
        (10 ** 30, OracleType.NUMBER),
        (Decimal("-123.456"), OracleType.NUMBER),
        (Decimal("0.000001"), OracleType.NUMBER),
        (1.5, OracleType.BINARY_DOUBLE),
        (-2.25e100, OracleType.BINARY_DOUBLE),
        (datetime.datetime(2024, 1, 15, 10, 30, 45), OracleType.DATE),
        (datetime.datetime(1, 1, 1), OracleType.DATE),
        (datetime.datetime(2024, 1, 15, 10, 30, 45, 999999), OracleType.TIMESTAMP),
        (datetime.timedelta(days=3, hours=4, minutes=5, seconds=6, microseconds=7), OracleType.INTERVAL_DS),
        (-datetime.timedelta(hours=36), OracleType.INTERVAL_DS),
        (b"\x00\x01\xfe\xff", OracleType.RAW),
    ],
)
def test_echo(db_connection, value, oracle_type):
    column, row = _echo(db_connection, value)
    assert column.type is oracle_type
    assert row[0] == value
    assert type(row[0]) is type(value)


def test_echo_null(db_connection):
    column, row = _echo(db_connection, None)
    assert row[0] is None
    assert row.values()[0].is_null


def test_echo_float32(db_connection):
    column, row = _echo(db_connection, Float32(0.5))
    assert column.type is OracleType.BINARY_FLOAT
    assert row[0] == 0.5


def test_echo_interval_year_month(db_connection):
    column, row = _echo(db_connection, IntervalYearMonth(-2, -3, precision=4))
    assert column.type is OracleType.INTERVAL_YM
    assert row.values()[0].total_months == -27


def test_echo_rowid(db_connection):
    column, row = _echo(db_connection, RowId("AAAR3sAAEAAAACXAAA"))
    assert row[0] == "AAAR3sAAEAAAACXAAA"


def test_echo_several_values(db_connection):
    with db_connection.execute(
        "select :n, :t, :d from dual", {"n": 1, "t": "two", "d": datetime.datetime(2003, 3, 3)}
    ) as stmt:
        assert [c.name for c in stmt.columns] == ["N", "T", "D"]
        assert stmt.result_set().fetchall() == [[1, "two", datetime.datetime(2003, 3, 3)]]


def test_national_text(db_connection):
    column, row = _echo(db_connection, "Größe 大きさ", BindSpec(OracleType.NVARCHAR))
    assert column.type is OracleType.NVARCHAR
    assert row[0] == "Größe 大きさ"
    assert row.values()[0].encoding == "utf-16-be"


def test_long_values(db_connection):
    text = "y" * 40000
    column, row = _echo(db_connection, text)
    assert column.type is OracleType.LONG
    assert row[0] == text

    data = bytes(range(256)) * 200
    column, row = _echo(db_connection, data)
    assert column.type is OracleType.LONG_RAW
    assert row[0] == data


@pytest.mark.parametrize(
    "offset",
    [datetime.timedelta(hours=5, minutes=30), -datetime.timedelta(hours=3, minutes=30), datetime.timedelta(0)],
)
def test_fixed_offset(db_connection, offset):
    value = datetime.datetime(2024, 7, 1, 12, 0, 0, 500, tzinfo=datetime.timezone(offset))
    column, row = _echo(db_connection, value)
    assert column.type is OracleType.TIMESTAMP_TZ
    assert row[0] == value
    assert row[0].utcoffset() == offset


def test_named_region(db_connection):
    value = Timestamp(2024, 6, 1, 12, 0, 0, zone=TimeZone.named("Europe/Paris"))
    column, row = _echo(db_connection, value)
    zone = row.values()[0].zone
    assert column.type is OracleType.TIMESTAMP_TZ
    assert zone.kind is ZoneKind.NAMED
    assert zone.name == "Europe/Paris"
    assert zone.offset == datetime.timedelta(hours=1)


def test_session_time_zone(db_connection, fake_oci):
    fake_oci.session_tz = (-5, 0)
    value = Timestamp(2024, 6, 1, 12, 0, 0, zone=TimeZone.session())
    column, row = _echo(db_connection, value)
    assert column.type is OracleType.TIMESTAMP_LTZ
    assert row.values()[0].zone.kind is ZoneKind.SESSION
    assert row[0].utcoffset() == datetime.timedelta(hours=-5)


def test_invalid_date_rejected(db_connection, fake_oci):
    stmt = db_connection.prepare("select :a from dual")
    with pytest.raises(BindError) as excinfo:
        stmt.bind("a", Timestamp(2023, 2, 30))
    assert excinfo.value.code == 1847
    assert fake_oci.live("descriptor") == 0
    stmt.close()


def test_nanoseconds_survive(db_connection):
    value = Timestamp(2024, 1, 1, 0, 0, 0, 123456789, precision=9)
    column, row = _echo(db_connection, value)
    assert row.values()[0].nanosecond == 123456789


def test_lob_bind(db_connection):
    lob = db_connection.create_temporary_lob(OracleType.CLOB)
    lob.write("temporary content")
    column, row = _echo(db_connection, lob)
    assert column.type is OracleType.CLOB
    assert isinstance(row[0], Lob)
    assert row[0].read() == "temporary content"
    assert row[0] == lob


def test_text_to_lob_parameter(db_connection):
    column, row = _echo(db_connection, "inline text", OracleType.CLOB)
    assert column.type is OracleType.LONG
    assert row[0] == "inline text"


def test_lob_type_mismatch(db_connection):
    lob = db_connection.create_temporary_lob(OracleType.BLOB)
    stmt = db_connection.prepare("select :a from dual")
    with pytest.raises(BindError):
        stmt.bind("a", lob, OracleType.CLOB)
    with pytest.raises(BindError):
        stmt.bind("a", Raw(b"x"), OracleType.CLOB)
    stmt.close()


@pytest.mark.parametrize(
    "value, declared",
    [
        (datetime.datetime(2020, 2, 29, 23, 59, 59), OracleType.DATE),
        (1.25, OracleType.BINARY_DOUBLE),
        (b"\xde\xad\xbe\xef", BindSpec(OracleType.RAW, 16)),
        (datetime.timedelta(days=1, seconds=1), OracleType.INTERVAL_DS),
        (datetime.datetime(2024, 2, 2, 2, 2, 2, 2, tzinfo=datetime.timezone.utc), OracleType.TIMESTAMP_TZ),
    ],
)
def test_out_binds(db_connection, value, declared):
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", value, declared)
    stmt.bind("b", None, declared, Direction.OUT)
    stmt.execute()
    assert stmt.out_value("b").to_python() == value
    stmt.close()


def test_out_lob(db_connection):
    source = db_connection.create_temporary_lob(OracleType.BLOB)
    source.write(b"\x01\x02\x03")
    stmt = db_connection.prepare("begin :b := :a; end;")
    stmt.bind("a", source)
    stmt.bind("b", None, OracleType.BLOB, Direction.OUT)
    stmt.execute()
    out = stmt.out_value("b").lob
    assert out.read() == b"\x01\x02\x03"
    stmt.close()
    # The returned locator belongs to the caller
    assert out.read() == b"\x01\x02\x03"


@pytest.mark.parametrize("text", ["x", "x" * 4000, "é" * 2000, "大" * 1333 + "x"])
def test_text_size_limits(db_connection, text):
    column, row = _echo(db_connection, text)
    assert column.type is OracleType.VARCHAR
    assert len(text.encode("utf-8")) <= 4000
    assert row[0] == text


@pytest.mark.parametrize(
    "value, precision",
    [
        (Decimal("9"), 1),
        (Decimal("-9"), 1),
        (Decimal("9" * 38), 38),
        (-Decimal("9" * 38), 38),
    ],
)
def test_number_precision_limits(db_connection, value, precision):
    column, row = _echo(db_connection, value, BindSpec(OracleType.NUMBER, precision=precision))
    assert row[0] == value
    with pytest.raises(ConversionError):
        _echo(db_connection, value * 10, BindSpec(OracleType.NUMBER, precision=precision))


@pytest.fixture
def limits(fake_oci):
    fake_oci.add_query(
        "select * from limits",
        [
            Column("TINY", SQLT.NUM, 22, precision=1, scale=0),
            Column("WIDE", SQLT.NUM, 22, precision=18, scale=0),
            Column("HUGE", SQLT.NUM, 22, precision=38, scale=0),
            Column("TS0", SQLT.TIMESTAMP, 11, scale=0),
            Column("TS9", SQLT.TIMESTAMP, 11, scale=9),
            Column("IV0", SQLT.INTERVAL_DS, 11, precision=0, scale=0),
            Column("IV9", SQLT.INTERVAL_DS, 11, precision=9, scale=9),
        ],
        [
            (9, 10 ** 18 - 1, Decimal("9" * 38),
             DateTimeState(2024, 1, 1, 12, 0, 0), DateTimeState(2024, 1, 1, 12, 0, 0, 123456789),
             IntervalState(hours=23, minutes=59, seconds=59),
             IntervalState(days=999999999, hours=23, minutes=59, seconds=59, fsec=999999999)),
            (-9, -(10 ** 18 - 1), -Decimal("9" * 38),
             DateTimeState(1, 1, 1), DateTimeState(9999, 12, 31, 23, 59, 59, 999999999),
             IntervalState(), IntervalState(days=-999999999, fsec=-1)),
        ],
    )


def test_column_precision_limits(db_connection, limits):
    with db_connection.execute("select * from limits") as stmt:
        assert [c.uses_int64 for c in stmt.columns[:3]] == [True, True, False]
        high, low = stmt.result_set().fetchall()

    assert (high.TINY, high.WIDE, high.HUGE) == (9, 10 ** 18 - 1, int("9" * 38))
    assert (low.TINY, low.WIDE, low.HUGE) == (-9, -(10 ** 18 - 1), -int("9" * 38))

    ts0, ts9 = high.values()[3:5]
    assert (ts0.precision, ts0.nanosecond) == (0, 0)
    assert (ts9.precision, ts9.nanosecond) == (9, 123456789)
    assert low.values()[4].nanosecond == 999999999

    iv0, iv9 = high.values()[5:7]
    assert (iv0.day_precision, iv0.fraction_precision) == (0, 0)
    assert iv0.to_timedelta() == datetime.timedelta(hours=23, minutes=59, seconds=59)
    assert (iv9.day_precision, iv9.fraction_precision) == (9, 9)
    assert (iv9.days, iv9.nanoseconds) == (999999999, 999999999)
    assert low.values()[6].days == -999999999
