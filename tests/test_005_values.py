"""
This file contains tests for the tagged value model, the DB-API type objects and Version.
Functions:
- test_to_value: Plain Python values are tagged with the matching variant.
- test_timestamp_limits: Precision and nanosecond ranges are enforced.
- test_interval_year_month: Field limits and total months.
- test_interval_day_second: timedelta conversion keeps the sign.
- test_time_zone_text: Zone strings handed to the client library.
- test_type_objects: Type objects compare equal to their OracleTypes.
- test_version_parse: Dotted release strings.
"""

import datetime
from decimal import Decimal

import pytest

import oracle_python
from oracle_python import BINARY, DATETIME, INTERVAL, NUMBER, ROWID, STRING, Version
from oracle_python.exceptions import BindError, ConversionError
from oracle_python.values import (
    Date,
    Float64,
    IntervalDaySecond,
    IntervalYearMonth,
    Null,
    Number,
    OracleType,
    Raw,
    Text,
    Timestamp,
    TimeZone,
    ZoneKind,
    NO_ZONE,
    to_value,
)


def test_to_value():
    assert to_value(None) == Null()
    assert to_value(5) == Number(Decimal(5))
    assert to_value(True) == Number(Decimal(1))
    assert to_value(1.5) == Float64(1.5)
    assert to_value("abc") == Text(b"abc", "utf-8")
    assert to_value(b"\x00\x01") == Raw(b"\x00\x01")
    assert to_value(datetime.datetime(2024, 1, 2, 3, 4, 5)) == Date(datetime.datetime(2024, 1, 2, 3, 4, 5))
    assert to_value(datetime.date(2024, 1, 2)) == Date(datetime.datetime(2024, 1, 2))


def test_to_value_timestamp():
    value = to_value(datetime.datetime(2024, 1, 2, 3, 4, 5, 123456))
    assert isinstance(value, Timestamp)
    assert value.nanosecond == 123456000
    assert value.zone is NO_ZONE


def test_to_value_aware_timestamp():
    tz = datetime.timezone(datetime.timedelta(hours=-5))
    value = to_value(datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=tz))
    assert value.zone.kind is ZoneKind.OFFSET
    assert value.to_python() == datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=tz)


def test_to_value_timedelta():
    value = to_value(datetime.timedelta(days=3, seconds=7))
    assert isinstance(value, IntervalDaySecond)
    assert value.day_precision == 9
    assert value.to_python() == datetime.timedelta(days=3, seconds=7)


def test_to_value_unsupported():
    with pytest.raises(BindError):
        to_value(object())


def test_null():
    assert Null().is_null
    assert Null(OracleType.DATE).to_python() is None
    assert not Text.from_str("x").is_null


def test_number_to_python():
    assert Number(Decimal("42")).to_python() == 42
    assert Number(Decimal("4.20")).to_python() == Decimal("4.20")
    assert Number(7).value == Decimal(7)


def test_text_keeps_encoding():
    text = Text.from_str("Größe", "utf-16-be")
    assert text.data == "Größe".encode("utf-16-be")
    assert text.value == "Größe"


def test_timestamp_limits():
    with pytest.raises(ConversionError):
        Timestamp(2024, 1, 1, precision=10)
    with pytest.raises(ConversionError):
        Timestamp(2024, 1, 1, nanosecond=1_000_000_000)


def test_timestamp_to_datetime_drops_nanoseconds():
    value = Timestamp(2024, 1, 1, 12, 0, 0, 123456789, precision=9)
    assert value.to_datetime() == datetime.datetime(2024, 1, 1, 12, 0, 0, 123456)


def test_interval_year_month():
    assert IntervalYearMonth(2, 3).total_months == 27
    assert IntervalYearMonth(-1, -6).total_months == -18
    with pytest.raises(ConversionError):
        IntervalYearMonth(100, 0, precision=2)
    with pytest.raises(ConversionError):
        IntervalYearMonth(1, 12)


def test_interval_day_second():
    delta = -datetime.timedelta(days=1, hours=2, minutes=3, seconds=4, microseconds=5)
    value = IntervalDaySecond.from_timedelta(delta)
    assert (value.days, value.hours, value.minutes, value.seconds) == (-1, -2, -3, -4)
    assert value.nanoseconds == -5000
    assert value.to_timedelta() == delta


def test_interval_day_precision():
    with pytest.raises(ConversionError):
        IntervalDaySecond(100, day_precision=2)


def test_time_zone_text():
    assert TimeZone.fixed(datetime.timedelta(hours=5, minutes=30)).oci_text() == b"+05:30"
    assert TimeZone.fixed(-datetime.timedelta(hours=3, minutes=30)).oci_text() == b"-03:30"
    assert TimeZone.named("Europe/Paris").oci_text() == b"Europe/Paris"
    assert NO_ZONE.oci_text() is None
    assert TimeZone.session().tzinfo() is None


def test_type_objects():
    assert STRING == OracleType.VARCHAR
    assert OracleType.NCLOB == STRING
    assert NUMBER == OracleType.BINARY_DOUBLE
    assert NUMBER != OracleType.VARCHAR
    assert BINARY == OracleType.BLOB
    assert DATETIME == OracleType.TIMESTAMP_TZ
    assert INTERVAL == OracleType.INTERVAL_YM
    assert ROWID == OracleType.UROWID


def test_type_constructors():
    assert oracle_python.Date(2024, 1, 2) == datetime.date(2024, 1, 2)
    assert oracle_python.Time(1, 2, 3) == datetime.time(1, 2, 3)
    assert oracle_python.Timestamp(2024, 1, 2, 3, 4, 5) == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert oracle_python.Binary("abc") == b"abc"


def test_version_parse():
    assert Version.parse("19.3.0.0.0") == (19, 3, 0, 0, 0)
    assert Version.parse("21") == Version(21)
    assert str(Version(23, 4)) == "23.4.0.0.0"
    assert Version.parse("19.3") < Version.parse("21.1")


@pytest.mark.parametrize("text", ["", "1.2.3.4.5.6", "a.b", "19.-1"])
def test_version_parse_invalid(text):
    with pytest.raises(ValueError):
        Version.parse(text)


def test_version_from_release_number():
    assert Version.from_release_number((21 << 24) | (3 << 16)) == (21, 3, 0, 0, 0)
    assert Version.from_release_number(0x0C200100) == (12, 2, 0, 1, 0)
