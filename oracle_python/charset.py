"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module maps Oracle character sets to Python codecs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from oracle_python.exceptions import ErrorKind, InitError


class Width(Enum):
    SINGLE = "single-byte"
    FIXED_WIDE = "fixed-width wide"
    VARIABLE = "variable-width"


@dataclass(frozen=True)
class Charset:
    """
    A client character set.

    Attributes:
        name: Oracle name (AL32UTF8, WE8ISO8859P1, ...).
        charset_id: Numeric id passed to OCIEnvNlsCreate.
        codec: Python codec name used to decode and encode text.
        width: Width class of the encoding.
        max_bytes_per_char: Worst-case encoded size of one character; used to size buffers.
    """

    name: str
    charset_id: int
    codec: str
    width: Width
    max_bytes_per_char: int

    def decode(self, data: bytes) -> str:
        return data.decode(self.codec)

    def encode(self, text: str) -> bytes:
        return text.encode(self.codec)


_CHARSETS = [
    Charset("US7ASCII", 1, "ascii", Width.SINGLE, 1),
    Charset("WE8ISO8859P1", 31, "iso-8859-1", Width.SINGLE, 1),
    Charset("CL8MSWIN1251", 171, "cp1251", Width.SINGLE, 1),
    Charset("WE8MSWIN1252", 178, "cp1252", Width.SINGLE, 1),
    Charset("JA16SJIS", 832, "shift_jis", Width.VARIABLE, 2),
    Charset("ZHS16GBK", 852, "gbk", Width.VARIABLE, 2),
    Charset("UTF8", 871, "utf-8", Width.VARIABLE, 3),
    Charset("AL32UTF8", 873, "utf-8", Width.VARIABLE, 4),
    # Surrogate pairs take two code units.
    Charset("AL16UTF16", 2000, "utf-16-be", Width.FIXED_WIDE, 4),
]

CHARSETS_BY_NAME: Dict[str, Charset] = {c.name: c for c in _CHARSETS}
CHARSETS_BY_ID: Dict[int, Charset] = {c.charset_id: c for c in _CHARSETS}

DEFAULT_CHARSET = "AL32UTF8"
DEFAULT_NCHARSET = "AL16UTF16"


def lookup(name: str) -> Charset:
    """
    Return the Charset named `name` (case insensitive).

    Raises:
        InitError: The character set is not supported by the driver.
    """
    try:
        return CHARSETS_BY_NAME[name.upper()]
    except KeyError:
        raise InitError(
            driver_error=f"Unsupported client character set {name!r}",
            kind=ErrorKind.OUT_OF_RANGE,
        ) from None


def lookup_id(charset_id: int) -> Charset:
    try:
        return CHARSETS_BY_ID[charset_id]
    except KeyError:
        raise InitError(
            driver_error=f"Unsupported client character set id {charset_id}",
            kind=ErrorKind.OUT_OF_RANGE,
        ) from None
