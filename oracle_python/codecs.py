"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module encodes and decodes the byte formats of Oracle's fixed-layout native types:
NUMBER (SQLT_VNU / SQLT_NUM), DATE (SQLT_DAT), 64-bit integers (SQLT_INT) and IEEE
binary floats (SQLT_BFLOAT / SQLT_BDOUBLE).
"""

import datetime
import struct
from decimal import Decimal
from typing import Union

from oracle_python.exceptions import ConversionError, ErrorKind

# NUMBER layout: one exponent byte followed by at most 20 base-100 digits.
NUMBER_MAX_DIGITS = 20
NUMBER_MAX_EXPONENT = 62
NUMBER_MIN_EXPONENT = -65
# SQLT_VNU adds a length byte.
VNU_SIZE = 22

_NEGATIVE_TERMINATOR = 102
_ZERO = b"\x80"

_INT64 = struct.Struct("=q")
_FLOAT32 = struct.Struct("=f")
_FLOAT64 = struct.Struct("=d")

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


def _overflow(message: str) -> ConversionError:
    return ConversionError(driver_error=message, kind=ErrorKind.NUMERIC_OVERFLOW)


def encode_number(value: Union[int, Decimal]) -> bytes:
    """
    Encode a number in Oracle's internal NUMBER format.

    Raises:
        ConversionError: NaN, infinity, more than 40 significant digits, or an
            exponent outside the NUMBER range.
    """
    value = Decimal(value)
    if not value.is_finite():
        raise _overflow(f"{value} cannot be stored in a NUMBER")
    if value == 0:
        return _ZERO

    sign, digit_tuple, exponent = value.as_tuple()
    digits = list(digit_tuple)
    while digits[-1] == 0:
        digits.pop()
        exponent += 1
    # Pair decimal digits into base-100 digits, aligned on an even decimal exponent.
    if exponent % 2:
        digits.append(0)
        exponent -= 1
    if len(digits) % 2:
        digits.insert(0, 0)
    pairs = [digits[i] * 10 + digits[i + 1] for i in range(0, len(digits), 2)]
    base100_exponent = exponent // 2 + len(pairs) - 1

    if len(pairs) > NUMBER_MAX_DIGITS:
        raise _overflow(f"{value} has more significant digits than a NUMBER can hold")
    if not NUMBER_MIN_EXPONENT <= base100_exponent <= NUMBER_MAX_EXPONENT:
        raise _overflow(f"{value} is outside the range of NUMBER")

    if sign == 0:
        return bytes([193 + base100_exponent] + [p + 1 for p in pairs])
    encoded = [62 - base100_exponent] + [101 - p for p in pairs]
    if len(pairs) < NUMBER_MAX_DIGITS:
        encoded.append(_NEGATIVE_TERMINATOR)
    return bytes(encoded)


def decode_number(data: bytes) -> Decimal:
    """
    Decode the internal NUMBER format into an exact Decimal with trailing zeros removed.

    Raises:
        ConversionError: Empty input, malformed digits, or the infinity encodings.
    """
    if not data:
        raise ConversionError(driver_error="Empty NUMBER value", kind=ErrorKind.INVALID_NUMBER)
    head = data[0]
    if data == _ZERO:
        return Decimal(0)
    if head == 0 or (head == 0xFF and data[1:] == b"\x65"):
        raise _overflow("NUMBER infinity cannot be represented")

    if head & 0x80:
        sign = 0
        base100_exponent = head - 193
        pairs = [b - 1 for b in data[1:]]
    else:
        sign = 1
        base100_exponent = 62 - head
        body = data[1:]
        if body and body[-1] == _NEGATIVE_TERMINATOR:
            body = body[:-1]
        pairs = [101 - b for b in body]

    if not pairs or any(p < 0 or p > 99 for p in pairs):
        raise ConversionError(
            driver_error=f"Malformed NUMBER value {data.hex()}", kind=ErrorKind.INVALID_NUMBER
        )

    digits = []
    for p in pairs:
        digits.extend(divmod(p, 10))
    exponent = 2 * (base100_exponent - len(pairs) + 1)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    while len(digits) > 1 and digits[0] == 0:
        digits.pop(0)
    return Decimal((sign, tuple(digits), exponent))


def encode_vnu(value: Union[int, Decimal]) -> bytes:
    """SQLT_VNU: length byte followed by the NUMBER bytes."""
    number = encode_number(value)
    return bytes([len(number)]) + number


def decode_vnu(data: bytes) -> Decimal:
    if not data:
        raise ConversionError(driver_error="Empty NUMBER value", kind=ErrorKind.INVALID_NUMBER)
    return decode_number(bytes(data[1 : 1 + data[0]]))


def number_to_python(value: Decimal) -> Union[int, Decimal]:
    """Integral values become int; everything else stays Decimal."""
    if value.as_tuple().exponent >= 0:
        return int(value)
    return value


def check_precision(value: Decimal, precision: int, scale: int) -> None:
    """
    Verify that `value` fits NUMBER(precision, scale) without rounding: value * 10**scale
    must be an integer of at most `precision` digits. precision 0 means unconstrained.
    A negative scale rounds to the left of the decimal point.

    Raises:
        ConversionError: Too many fractional or integral digits.
    """
    if precision <= 0 or value == 0:
        return
    _, digit_tuple, exponent = value.as_tuple()
    digits = list(digit_tuple)
    while digits[-1] == 0:
        digits.pop()
        exponent += 1
    if exponent < -scale:
        if scale >= 0:
            raise _overflow(f"{value} has more than {scale} fractional digits for NUMBER({precision},{scale})")
        raise _overflow(f"{value} is not a multiple of {10 ** -scale} for NUMBER({precision},{scale})")
    if len(digits) + exponent + scale > precision:
        raise _overflow(f"{value} is too large for NUMBER({precision},{scale})")


def encode_int64(value: int) -> bytes:
    if not INT_MIN <= value <= INT_MAX:
        raise _overflow(f"{value} does not fit a 64-bit integer")
    return _INT64.pack(value)


def decode_int64(data: bytes) -> int:
    return _INT64.unpack(bytes(data[:8]))[0]


def encode_float32(value: float) -> bytes:
    try:
        return _FLOAT32.pack(value)
    except OverflowError as e:
        raise _overflow(f"{value} does not fit a BINARY_FLOAT") from e


def decode_float32(data: bytes) -> float:
    return _FLOAT32.unpack(bytes(data[:4]))[0]


def encode_float64(value: float) -> bytes:
    return _FLOAT64.pack(value)


def decode_float64(data: bytes) -> float:
    return _FLOAT64.unpack(bytes(data[:8]))[0]


# DATE: century+100, year+100, month, day, hour+1, minute+1, second+1
DATE_SIZE = 7


def encode_date(value: datetime.datetime) -> bytes:
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime(value.year, value.month, value.day)
    century, year = divmod(value.year, 100)
    return bytes([
        century + 100,
        year + 100,
        value.month,
        value.day,
        value.hour + 1,
        value.minute + 1,
        value.second + 1,
    ])


def decode_date(data: bytes) -> datetime.datetime:
    """
    Raises:
        ConversionError: BC dates and years outside 1..9999.
    """
    century, year, month, day, hour, minute, second = bytes(data[:DATE_SIZE])
    if century < 100 or year < 100:
        raise ConversionError(
            driver_error="DATE values before year 1 are not supported", kind=ErrorKind.OUT_OF_RANGE
        )
    try:
        return datetime.datetime(
            (century - 100) * 100 + (year - 100), month, day, hour - 1, minute - 1, second - 1
        )
    except ValueError as e:
        raise ConversionError(driver_error=f"Invalid DATE value: {e}", kind=ErrorKind.OUT_OF_RANGE) from e
