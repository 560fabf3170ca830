"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the tagged value model of the oracle_python package.

Every column value and bind value is one of the Value variants below. Fetched values keep
the metadata of their native type (timestamp precision and zone, interval field precision,
text encoding) so that they can be written back unchanged.
"""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from oracle_python.codecs import number_to_python
from oracle_python.exceptions import BindError, ConversionError, ErrorKind


class OracleType(Enum):
    """Column and parameter types, named as in Oracle DDL."""

    LONG = "LONG"
    VARCHAR = "VARCHAR2"
    NVARCHAR = "NVARCHAR2"
    CHAR = "CHAR"
    NCHAR = "NCHAR"
    NUMBER = "NUMBER"
    BINARY_FLOAT = "BINARY_FLOAT"
    BINARY_DOUBLE = "BINARY_DOUBLE"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    TIMESTAMP_TZ = "TIMESTAMP WITH TIME ZONE"
    TIMESTAMP_LTZ = "TIMESTAMP WITH LOCAL TIME ZONE"
    INTERVAL_YM = "INTERVAL YEAR TO MONTH"
    INTERVAL_DS = "INTERVAL DAY TO SECOND"
    RAW = "RAW"
    LONG_RAW = "LONG RAW"
    CLOB = "CLOB"
    NCLOB = "NCLOB"
    BLOB = "BLOB"
    BFILE = "BFILE"
    ROWID = "ROWID"
    UROWID = "UROWID"


def _check_precision_range(name: str, precision: int) -> None:
    if not 0 <= precision <= 9:
        raise ConversionError(
            driver_error=f"{name} must be between 0 and 9, got {precision}",
            kind=ErrorKind.OUT_OF_RANGE,
        )


def _check_leading_field(name: str, value: int, precision: int) -> None:
    if abs(value) >= 10 ** precision:
        raise ConversionError(
            driver_error=f"{name} {value} has more than {precision} digits",
            kind=ErrorKind.OUT_OF_RANGE,
        )


@dataclass(frozen=True)
class Value:
    """Base class of all value variants."""

    @property
    def is_null(self) -> bool:
        return False

    def to_python(self) -> Any:
        """Plain Python equivalent of the value."""
        return self


@dataclass(frozen=True)
class Null(Value):
    """SQL NULL. `type` is the column type when the value was fetched."""

    type: Optional[OracleType] = None

    @property
    def is_null(self) -> bool:
        return True

    def to_python(self) -> None:
        return None


@dataclass(frozen=True)
class Text(Value):
    """Character data in its client encoding."""

    data: bytes
    encoding: str = "utf-8"

    @classmethod
    def from_str(cls, text: str, encoding: str = "utf-8") -> "Text":
        return cls(text.encode(encoding), encoding)

    @property
    def value(self) -> str:
        return self.data.decode(self.encoding)

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Number(Value):
    value: Decimal

    def __post_init__(self):
        if not isinstance(self.value, Decimal):
            object.__setattr__(self, "value", Decimal(self.value))

    def to_python(self):
        return number_to_python(self.value)


@dataclass(frozen=True)
class Float32(Value):
    value: float

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class Float64(Value):
    value: float

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class Date(Value):
    """DATE: second resolution, no time zone."""

    value: datetime.datetime

    def to_python(self) -> datetime.datetime:
        return self.value


class ZoneKind(Enum):
    NONE = "none"
    OFFSET = "offset"
    NAMED = "named"
    SESSION = "session"


@dataclass(frozen=True)
class TimeZone:
    """
    Zone component of a timestamp: absent, a fixed offset, a named region
    (which may also carry the offset in effect), or the session zone (LTZ).
    """

    kind: ZoneKind = ZoneKind.NONE
    offset: Optional[datetime.timedelta] = None
    name: Optional[str] = None

    @classmethod
    def fixed(cls, offset: datetime.timedelta) -> "TimeZone":
        return cls(ZoneKind.OFFSET, offset=offset)

    @classmethod
    def named(cls, name: str, offset: Optional[datetime.timedelta] = None) -> "TimeZone":
        return cls(ZoneKind.NAMED, offset=offset, name=name)

    @classmethod
    def session(cls, offset: Optional[datetime.timedelta] = None) -> "TimeZone":
        return cls(ZoneKind.SESSION, offset=offset)

    def tzinfo(self) -> Optional[datetime.tzinfo]:
        if self.offset is None:
            return None
        return datetime.timezone(self.offset)

    def oci_text(self) -> Optional[bytes]:
        """Zone string understood by OCIDateTimeConstruct, None for no zone."""
        if self.kind is ZoneKind.NAMED and self.name:
            return self.name.encode("ascii")
        if self.offset is None:
            return None
        total = int(self.offset.total_seconds()) // 60
        sign = "-" if total < 0 else "+"
        hours, minutes = divmod(abs(total), 60)
        return f"{sign}{hours:02d}:{minutes:02d}".encode("ascii")


NO_ZONE = TimeZone()


@dataclass(frozen=True)
class Timestamp(Value):
    """
    TIMESTAMP [WITH [LOCAL] TIME ZONE] with nanosecond fraction and 0-9 digit precision.
    """

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    nanosecond: int = 0
    precision: int = 6
    zone: TimeZone = field(default=NO_ZONE)

    def __post_init__(self):
        _check_precision_range("Timestamp precision", self.precision)
        if not 0 <= self.nanosecond <= 999_999_999:
            raise ConversionError(
                driver_error=f"nanosecond {self.nanosecond} out of range", kind=ErrorKind.OUT_OF_RANGE
            )

    @classmethod
    def from_datetime(cls, value: datetime.datetime, precision: int = 6) -> "Timestamp":
        zone = NO_ZONE
        if value.tzinfo is not None:
            zone = TimeZone.fixed(value.utcoffset())
        return cls(
            value.year, value.month, value.day, value.hour, value.minute, value.second,
            value.microsecond * 1000, precision, zone,
        )

    def to_datetime(self) -> datetime.datetime:
        """Convert to datetime; digits below the microsecond are dropped."""
        return datetime.datetime(
            self.year, self.month, self.day, self.hour, self.minute, self.second,
            self.nanosecond // 1000, tzinfo=self.zone.tzinfo(),
        )

    def to_python(self) -> datetime.datetime:
        return self.to_datetime()


@dataclass(frozen=True)
class IntervalYearMonth(Value):
    """INTERVAL YEAR(precision) TO MONTH. years and months carry the same sign."""

    years: int
    months: int
    precision: int = 2

    def __post_init__(self):
        _check_precision_range("Year precision", self.precision)
        _check_leading_field("Years", self.years, self.precision)
        if abs(self.months) > 11:
            raise ConversionError(
                driver_error=f"months {self.months} out of range", kind=ErrorKind.OUT_OF_RANGE
            )

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


@dataclass(frozen=True)
class IntervalDaySecond(Value):
    """INTERVAL DAY(day_precision) TO SECOND(fraction_precision). All fields carry the same sign."""

    days: int
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    nanoseconds: int = 0
    day_precision: int = 2
    fraction_precision: int = 6

    def __post_init__(self):
        _check_precision_range("Day precision", self.day_precision)
        _check_precision_range("Fractional second precision", self.fraction_precision)
        _check_leading_field("Days", self.days, self.day_precision)

    @classmethod
    def from_timedelta(cls, value: datetime.timedelta, day_precision: int = 2,
                       fraction_precision: int = 6) -> "IntervalDaySecond":
        sign = -1 if value < datetime.timedelta(0) else 1
        value = abs(value)
        hours, remainder = divmod(value.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return cls(
            sign * value.days, sign * hours, sign * minutes, sign * seconds,
            sign * value.microseconds * 1000, day_precision, fraction_precision,
        )

    def to_timedelta(self) -> datetime.timedelta:
        return datetime.timedelta(
            days=self.days, hours=self.hours, minutes=self.minutes, seconds=self.seconds,
            microseconds=self.nanoseconds // 1000 if self.nanoseconds >= 0 else -((-self.nanoseconds) // 1000),
        )

    def to_python(self) -> datetime.timedelta:
        return self.to_timedelta()


@dataclass(frozen=True)
class Raw(Value):
    data: bytes

    def to_python(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class Lob(Value):
    """A LOB locator. The content is read through `lob` (an oracle_python.lob.Lob)."""

    lob: Any

    def to_python(self):
        return self.lob


@dataclass(frozen=True)
class RowId(Value):
    """Physical rowid; an opaque string."""

    value: str

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class UniversalRowId(Value):
    """Universal (logical or foreign) rowid; an opaque string."""

    value: str

    def to_python(self) -> str:
        return self.value


def to_value(value: Any) -> Value:
    """
    Tag a plain Python value.

    None -> Null, int/Decimal/bool -> Number, float -> Float64, str -> Text (UTF-8),
    bytes -> Raw, datetime -> Date (no fraction, no zone) or Timestamp, date -> Date,
    timedelta -> IntervalDaySecond, oracle_python.lob.Lob -> Lob.

    Raises:
        BindError: The type has no Oracle counterpart.
    """
    if isinstance(value, Value):
        return value
    if value is None:
        return Null()
    if isinstance(value, (bool, int, Decimal)):
        return Number(Decimal(int(value)) if isinstance(value, bool) else Decimal(value))
    if isinstance(value, float):
        return Float64(value)
    if isinstance(value, str):
        return Text.from_str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Raw(bytes(value))
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None and value.microsecond == 0:
            return Date(value)
        return Timestamp.from_datetime(value)
    if isinstance(value, datetime.date):
        return Date(datetime.datetime(value.year, value.month, value.day))
    if isinstance(value, datetime.timedelta):
        return IntervalDaySecond.from_timedelta(value, day_precision=9, fraction_precision=9)
    from oracle_python.lob import Lob as LobObject

    if isinstance(value, LobObject):
        return Lob(value)
    raise BindError(
        driver_error=f"Python type {type(value).__name__} cannot be bound",
        kind=ErrorKind.TYPE_MISMATCH,
    )
