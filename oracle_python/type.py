"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains type objects and constructors for the oracle_python package.

The type objects compare equal to every OracleType of their family, so that
cursor descriptions can be tested with `column.type == oracle_python.STRING`.
"""

import datetime
import time

from oracle_python.values import OracleType


class _DBAPITypeObject:
    def __init__(self, name: str, *types: OracleType):
        self.name = name
        self.types = frozenset(types)

    def __eq__(self, other):
        if isinstance(other, _DBAPITypeObject):
            return self.types == other.types
        return other in self.types

    def __hash__(self):
        return hash(self.types)

    def __repr__(self):
        return f"<DB-API type {self.name}>"


# Type Objects
STRING = _DBAPITypeObject(
    "STRING",
    OracleType.VARCHAR, OracleType.NVARCHAR, OracleType.CHAR, OracleType.NCHAR,
    OracleType.LONG, OracleType.CLOB, OracleType.NCLOB,
)
BINARY = _DBAPITypeObject(
    "BINARY", OracleType.RAW, OracleType.LONG_RAW, OracleType.BLOB, OracleType.BFILE
)
NUMBER = _DBAPITypeObject(
    "NUMBER", OracleType.NUMBER, OracleType.BINARY_FLOAT, OracleType.BINARY_DOUBLE
)
DATETIME = _DBAPITypeObject(
    "DATETIME",
    OracleType.DATE, OracleType.TIMESTAMP, OracleType.TIMESTAMP_TZ, OracleType.TIMESTAMP_LTZ,
)
INTERVAL = _DBAPITypeObject("INTERVAL", OracleType.INTERVAL_YM, OracleType.INTERVAL_DS)
ROWID = _DBAPITypeObject("ROWID", OracleType.ROWID, OracleType.UROWID)


# Type Constructors
def Date(year: int, month: int, day: int) -> datetime.date:
    """
    Generates a date object.
    """
    return datetime.date(year, month, day)


def Time(hour: int, minute: int, second: int) -> datetime.time:
    """
    Generates a time object.
    """
    return datetime.time(hour, minute, second)


def Timestamp(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0, microsecond: int = 0
) -> datetime.datetime:
    """
    Generates a timestamp object.
    """
    return datetime.datetime(year, month, day, hour, minute, second, microsecond)


def DateFromTicks(ticks: int) -> datetime.date:
    return datetime.date.fromtimestamp(ticks)


def TimeFromTicks(ticks: int) -> datetime.time:
    return datetime.time(*time.localtime(ticks)[3:6])


def TimestampFromTicks(ticks: int) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(ticks)


def Binary(value) -> bytes:
    """
    Converts a string or bytes to bytes using UTF-8 encoding.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value).encode("utf-8")
