"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module maps Oracle column and parameter types to buffers and values.

For every OracleType a TypeInfo decides how the value travels through OCI:

    INLINE_FIXED    fixed-size scalar in the row buffer (BINARY_FLOAT/DOUBLE, DATE, small NUMBER)
    INLINE_BOUNDED  variable-length bytes up to the declared maximum (text, RAW, NUMBER, rowids)
    PIECEWISE       LONG / LONG RAW, fetched piece by piece with OCI_DYNAMIC_FETCH
    LOCATOR         LOB locators, content read later through oracle_python.lob.Lob
    DESCRIPTOR      OCIDateTime / OCIInterval descriptors

DefineBuffer holds the output arrays of one result column for a whole fetch batch, BindBuffer
the input/output storage of one statement parameter. Both keep the ctypes arrays alive for as
long as OCI may write into them.
"""

import ctypes
import datetime
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from oracle_python import codecs
from oracle_python.charset import Charset
from oracle_python.constants import SQLT, Attribute, ConstantsOCI, DescriptorType, Direction, HandleType
from oracle_python.diagnostics import check_error
from oracle_python.exceptions import (
    BindError,
    Error,
    ErrorKind,
    FetchError,
    NotSupportedError,
)
from oracle_python.values import (
    Date,
    Float32,
    Float64,
    IntervalDaySecond,
    IntervalYearMonth,
    Lob,
    Null,
    Number,
    OracleType,
    Raw,
    RowId,
    Text,
    Timestamp,
    TimeZone,
    UniversalRowId,
    Value,
    ZoneKind,
    NO_ZONE,
)

SQLCS_IMPLICIT = ConstantsOCI.SQLCS_IMPLICIT.value
SQLCS_NCHAR = ConstantsOCI.SQLCS_NCHAR.value

MAX_CHAR_BYTES = 4000
MAX_RAW_BYTES = 2000
ROWID_SIZE = 18
# Printable form of a 4000 byte universal rowid.
UROWID_SIZE = 5400
# Largest value size accepted by OCIDefineByPos2 for dynamically fetched columns.
PIECEWISE_SIZE = 2 ** 31 - 1
# Largest inline text/raw bind; longer values go as LONG / LONG RAW.
MAX_INLINE_BIND = 32767
POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)


class Strategy(Enum):
    INLINE_FIXED = "inline fixed"
    INLINE_BOUNDED = "inline bounded"
    PIECEWISE = "piecewise"
    LOCATOR = "locator"
    DESCRIPTOR = "descriptor"


@dataclass(frozen=True)
class TypeInfo:
    """
    Transport of one OracleType.

    Attributes:
        strategy: Buffer strategy.
        sqlt: External datatype code used for defines and binds.
        size: Fixed buffer size per value; 0 when it depends on the column.
        descriptor: Descriptor type for LOCATOR and DESCRIPTOR strategies.
        accepts: Value variants that may be bound to a parameter of this type.
    """

    strategy: Strategy
    sqlt: int
    size: int = 0
    descriptor: Optional[DescriptorType] = None
    accepts: Tuple[type, ...] = ()


TYPE_INFO: Dict[OracleType, TypeInfo] = {
    OracleType.VARCHAR: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.CHR, accepts=(Text,)),
    OracleType.NVARCHAR: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.CHR, accepts=(Text,)),
    OracleType.CHAR: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.AFC, accepts=(Text,)),
    OracleType.NCHAR: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.AFC, accepts=(Text,)),
    OracleType.LONG: TypeInfo(Strategy.PIECEWISE, SQLT.LNG, accepts=(Text,)),
    OracleType.NUMBER: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.VNU, codecs.VNU_SIZE, accepts=(Number,)),
    OracleType.BINARY_FLOAT: TypeInfo(Strategy.INLINE_FIXED, SQLT.BFLOAT, 4, accepts=(Float32,)),
    OracleType.BINARY_DOUBLE: TypeInfo(Strategy.INLINE_FIXED, SQLT.BDOUBLE, 8, accepts=(Float64,)),
    OracleType.DATE: TypeInfo(Strategy.INLINE_FIXED, SQLT.DAT, codecs.DATE_SIZE, accepts=(Date,)),
    OracleType.TIMESTAMP: TypeInfo(
        Strategy.DESCRIPTOR, SQLT.TIMESTAMP, POINTER_SIZE, DescriptorType.TIMESTAMP, (Timestamp,)
    ),
    OracleType.TIMESTAMP_TZ: TypeInfo(
        Strategy.DESCRIPTOR, SQLT.TIMESTAMP_TZ, POINTER_SIZE, DescriptorType.TIMESTAMP_TZ, (Timestamp,)
    ),
    OracleType.TIMESTAMP_LTZ: TypeInfo(
        Strategy.DESCRIPTOR, SQLT.TIMESTAMP_LTZ, POINTER_SIZE, DescriptorType.TIMESTAMP_LTZ, (Timestamp,)
    ),
    OracleType.INTERVAL_YM: TypeInfo(
        Strategy.DESCRIPTOR, SQLT.INTERVAL_YM, POINTER_SIZE, DescriptorType.INTERVAL_YM, (IntervalYearMonth,)
    ),
    OracleType.INTERVAL_DS: TypeInfo(
        Strategy.DESCRIPTOR, SQLT.INTERVAL_DS, POINTER_SIZE, DescriptorType.INTERVAL_DS, (IntervalDaySecond,)
    ),
    OracleType.RAW: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.BIN, accepts=(Raw,)),
    OracleType.LONG_RAW: TypeInfo(Strategy.PIECEWISE, SQLT.LBI, accepts=(Raw,)),
    OracleType.CLOB: TypeInfo(Strategy.LOCATOR, SQLT.CLOB, POINTER_SIZE, DescriptorType.LOB, (Text, Lob)),
    OracleType.NCLOB: TypeInfo(Strategy.LOCATOR, SQLT.CLOB, POINTER_SIZE, DescriptorType.LOB, (Text, Lob)),
    OracleType.BLOB: TypeInfo(Strategy.LOCATOR, SQLT.BLOB, POINTER_SIZE, DescriptorType.LOB, (Raw, Lob)),
    OracleType.BFILE: TypeInfo(Strategy.LOCATOR, SQLT.BFILE, POINTER_SIZE, DescriptorType.FILE, (Lob,)),
    OracleType.ROWID: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.CHR, ROWID_SIZE, accepts=(RowId,)),
    OracleType.UROWID: TypeInfo(Strategy.INLINE_BOUNDED, SQLT.CHR, UROWID_SIZE, accepts=(UniversalRowId, RowId)),
}

# Describe code -> type; character types are split by charset form afterwards.
_DESCRIBE_CODES: Dict[int, OracleType] = {
    SQLT.CHR: OracleType.VARCHAR,
    SQLT.VCS: OracleType.VARCHAR,
    SQLT.AFC: OracleType.CHAR,
    SQLT.NUM: OracleType.NUMBER,
    SQLT.LNG: OracleType.LONG,
    SQLT.DAT: OracleType.DATE,
    SQLT.BFLOAT: OracleType.BINARY_FLOAT,
    SQLT.IBFLOAT: OracleType.BINARY_FLOAT,
    SQLT.BDOUBLE: OracleType.BINARY_DOUBLE,
    SQLT.IBDOUBLE: OracleType.BINARY_DOUBLE,
    SQLT.TIMESTAMP_INTERNAL: OracleType.TIMESTAMP,
    SQLT.TIMESTAMP: OracleType.TIMESTAMP,
    SQLT.TIMESTAMP_TZ_INTERNAL: OracleType.TIMESTAMP_TZ,
    SQLT.TIMESTAMP_TZ: OracleType.TIMESTAMP_TZ,
    SQLT.TIMESTAMP_LTZ_INTERNAL: OracleType.TIMESTAMP_LTZ,
    SQLT.TIMESTAMP_LTZ: OracleType.TIMESTAMP_LTZ,
    SQLT.INTERVAL_YM_INTERNAL: OracleType.INTERVAL_YM,
    SQLT.INTERVAL_YM: OracleType.INTERVAL_YM,
    SQLT.INTERVAL_DS_INTERNAL: OracleType.INTERVAL_DS,
    SQLT.INTERVAL_DS: OracleType.INTERVAL_DS,
    SQLT.BIN: OracleType.RAW,
    SQLT.LBI: OracleType.LONG_RAW,
    SQLT.CLOB: OracleType.CLOB,
    SQLT.BLOB: OracleType.BLOB,
    SQLT.BFILE: OracleType.BFILE,
    SQLT.RID: OracleType.ROWID,
    SQLT.RDD: OracleType.ROWID,
    SQLT.UROWID: OracleType.UROWID,
}

_NATIONAL = {
    OracleType.VARCHAR: OracleType.NVARCHAR,
    OracleType.CHAR: OracleType.NCHAR,
    OracleType.CLOB: OracleType.NCLOB,
}

NATIONAL_TYPES = frozenset(_NATIONAL.values())
CHARACTER_TYPES = frozenset(
    [OracleType.VARCHAR, OracleType.CHAR, OracleType.LONG, OracleType.CLOB]
) | NATIONAL_TYPES


def describe_type(native_type: int, charset_form: int = SQLCS_IMPLICIT) -> OracleType:
    """
    Map a describe-step type code to an OracleType.

    Raises:
        NotSupportedError: The code belongs to a type the driver does not handle
            (objects, collections, REF cursors, ...).
    """
    try:
        oracle_type = _DESCRIBE_CODES[native_type]
    except KeyError:
        raise NotSupportedError(
            driver_error=f"Unsupported column type code {native_type}",
            kind=ErrorKind.TYPE_MISMATCH,
        ) from None
    if charset_form == SQLCS_NCHAR:
        oracle_type = _NATIONAL.get(oracle_type, oracle_type)
    return oracle_type


def charset_form_of(oracle_type: OracleType) -> int:
    return SQLCS_NCHAR if oracle_type in NATIONAL_TYPES else SQLCS_IMPLICIT


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Metadata of one result column, as reported by the describe step.

    Attributes:
        name: Column name.
        type: OracleType of the column.
        native_type: Describe-step type code.
        data_size: Maximum size in bytes on the server.
        char_size: Maximum size in characters (character types), else 0.
        precision: NUMBER precision, or leading field precision of intervals.
        scale: NUMBER scale, or fractional second precision of timestamps and intervals.
        nullable: Whether NULL is allowed.
        charset_form: SQLCS_IMPLICIT or SQLCS_NCHAR.
    """

    name: str
    type: OracleType
    native_type: int = 0
    data_size: int = 0
    char_size: int = 0
    precision: int = 0
    scale: int = 0
    nullable: bool = True
    charset_form: int = SQLCS_IMPLICIT

    @property
    def info(self) -> TypeInfo:
        return TYPE_INFO[self.type]

    @property
    def uses_int64(self) -> bool:
        """NUMBER(p, 0) with p <= 18 travels as a native 64-bit integer."""
        return self.type is OracleType.NUMBER and 0 < self.precision <= 18 and self.scale == 0

    @property
    def strategy(self) -> Strategy:
        if self.uses_int64:
            return Strategy.INLINE_FIXED
        return self.info.strategy

    @property
    def sqlt(self) -> int:
        if self.uses_int64:
            return SQLT.INT
        return self.info.sqlt

    def buffer_size(self, charset: Charset) -> int:
        """
        Bytes reserved per row for this column.

        Character columns reserve room for the declared character length in the
        client charset's widest encoding, since conversion may expand the data.
        """
        if self.uses_int64:
            return 8
        strategy = self.info.strategy
        if strategy is Strategy.PIECEWISE:
            return PIECEWISE_SIZE
        if self.info.size:
            return self.info.size
        if self.type in CHARACTER_TYPES:
            chars = self.char_size or self.data_size or 1
            return max(chars * charset.max_bytes_per_char, 1)
        return max(self.data_size, 1)

    def description(self) -> tuple:
        """DB-API 7-item description tuple."""
        internal_size = self.char_size if self.type in CHARACTER_TYPES else self.data_size
        if self.type is OracleType.NUMBER:
            precision, scale = self.precision, self.scale
        else:
            precision, scale = self.precision or None, self.scale or None
        return (self.name, self.type, None, internal_size or None, precision, scale, self.nullable)


@dataclass(frozen=True)
class BindSpec:
    """
    Declared type of a parameter. Required for OUT and IN OUT parameters.

    Attributes:
        type: OracleType of the parameter.
        size: Maximum size in bytes for text and RAW; 0 selects the type maximum.
        precision: NUMBER precision, or leading field precision of intervals.
        scale: NUMBER scale, or fractional second precision.
    """

    type: OracleType
    size: int = 0
    precision: int = 0
    scale: int = 0


def infer_type(value: Value) -> OracleType:
    """OracleType a value is bound as when no type is declared."""
    if isinstance(value, Text):
        return OracleType.VARCHAR
    if isinstance(value, Number):
        return OracleType.NUMBER
    if isinstance(value, Float32):
        return OracleType.BINARY_FLOAT
    if isinstance(value, Float64):
        return OracleType.BINARY_DOUBLE
    if isinstance(value, Date):
        return OracleType.DATE
    if isinstance(value, Timestamp):
        if value.zone.kind is ZoneKind.NONE:
            return OracleType.TIMESTAMP
        if value.zone.kind is ZoneKind.SESSION:
            return OracleType.TIMESTAMP_LTZ
        return OracleType.TIMESTAMP_TZ
    if isinstance(value, IntervalYearMonth):
        return OracleType.INTERVAL_YM
    if isinstance(value, IntervalDaySecond):
        return OracleType.INTERVAL_DS
    if isinstance(value, Raw):
        return OracleType.RAW
    if isinstance(value, Lob):
        return value.lob.type
    if isinstance(value, UniversalRowId):
        return OracleType.UROWID
    if isinstance(value, RowId):
        return OracleType.ROWID
    return OracleType.VARCHAR


def _lob_compatible(lob_type: OracleType, declared: OracleType) -> bool:
    if lob_type is declared:
        return True
    return {lob_type, declared} <= {OracleType.CLOB, OracleType.NCLOB}


def check_bind(value: Value, declared: Optional[BindSpec], direction: Direction) -> BindSpec:
    """
    Validate a bind and return the effective BindSpec.

    Raises:
        BindError: Missing declaration for OUT/IN OUT, LONG output, or a value
            variant the parameter type does not accept.
    """
    if direction is not Direction.IN and declared is None:
        raise BindError(
            driver_error=f"{direction.name} parameters need a declared type",
            kind=ErrorKind.TYPE_MISMATCH,
        )
    if declared is None:
        declared = BindSpec(infer_type(value))
    info = TYPE_INFO[declared.type]
    if direction is not Direction.IN and info.strategy is Strategy.PIECEWISE:
        raise BindError(
            driver_error=f"{declared.type.value} cannot be bound as {direction.name}",
            kind=ErrorKind.TYPE_MISMATCH,
        )
    if not value.is_null and not isinstance(value, info.accepts):
        raise BindError(
            driver_error=f"{type(value).__name__} value cannot be bound to a {declared.type.value} parameter",
            kind=ErrorKind.TYPE_MISMATCH,
        )
    if isinstance(value, Lob) and not _lob_compatible(value.lob.type, declared.type):
        raise BindError(
            driver_error=f"{value.lob.type.value} locator cannot be bound to a {declared.type.value} parameter",
            kind=ErrorKind.TYPE_MISMATCH,
        )
    return declared


# Decoding


def _descriptor_check(connection, ret: int, context: str) -> None:
    check_error(connection._library, connection._errhp, ret, FetchError, context, connection=connection)


def decode_timestamp(connection, descriptor, oracle_type: OracleType, precision: int) -> Timestamp:
    lib = connection._library
    envhp, errhp = connection._envhp, connection._errhp
    ret, year, month, day = lib.datetime_get_date(envhp, errhp, descriptor)
    _descriptor_check(connection, ret, "Reading timestamp date")
    ret, hour, minute, second, fsec = lib.datetime_get_time(envhp, errhp, descriptor)
    _descriptor_check(connection, ret, "Reading timestamp time")

    zone = NO_ZONE
    if oracle_type is not OracleType.TIMESTAMP:
        ret, tz_hours, tz_minutes = lib.datetime_get_tz_offset(envhp, errhp, descriptor)
        _descriptor_check(connection, ret, "Reading time zone offset")
        offset = datetime.timedelta(hours=tz_hours, minutes=tz_minutes)
        if oracle_type is OracleType.TIMESTAMP_LTZ:
            zone = TimeZone.session(offset)
        else:
            ret, name = lib.datetime_get_tz_name(envhp, errhp, descriptor)
            _descriptor_check(connection, ret, "Reading time zone name")
            if name and name[0] not in "+-":
                zone = TimeZone.named(name, offset)
            else:
                zone = TimeZone.fixed(offset)
    return Timestamp(
        year, month, day, hour, minute, second, fsec,
        precision=min(max(precision, 0), 9), zone=zone,
    )


def decode_interval(connection, descriptor, oracle_type: OracleType, precision: int, scale: int) -> Value:
    lib = connection._library
    envhp, errhp = connection._envhp, connection._errhp
    if oracle_type is OracleType.INTERVAL_YM:
        ret, years, months = lib.interval_get_year_month(envhp, errhp, descriptor)
        _descriptor_check(connection, ret, "Reading interval")
        return IntervalYearMonth(years, months, precision=precision)
    ret, days, hours, minutes, seconds, fsec = lib.interval_get_day_second(envhp, errhp, descriptor)
    _descriptor_check(connection, ret, "Reading interval")
    return IntervalDaySecond(
        days, hours, minutes, seconds, fsec, day_precision=precision, fraction_precision=scale
    )


def decode_inline(oracle_type: OracleType, data: bytes, charset: Charset, as_int64: bool = False) -> Value:
    """Decode the bytes of an INLINE_FIXED, INLINE_BOUNDED or PIECEWISE value."""
    if oracle_type is OracleType.NUMBER:
        if as_int64:
            return Number(Decimal(codecs.decode_int64(data)))
        return Number(codecs.decode_vnu(data))
    if oracle_type in CHARACTER_TYPES:
        # Text keeps the client bytes; validate them now so bad data fails at fetch.
        charset.decode(data)
        return Text(data, charset.codec)
    if oracle_type in (OracleType.RAW, OracleType.LONG_RAW):
        return Raw(data)
    if oracle_type is OracleType.BINARY_FLOAT:
        return Float32(codecs.decode_float32(data))
    if oracle_type is OracleType.BINARY_DOUBLE:
        return Float64(codecs.decode_float64(data))
    if oracle_type is OracleType.DATE:
        return Date(codecs.decode_date(data))
    if oracle_type is OracleType.ROWID:
        return RowId(data.decode("ascii"))
    if oracle_type is OracleType.UROWID:
        return UniversalRowId(data.decode("ascii"))
    raise NotSupportedError(driver_error=f"{oracle_type.value} is not an inline type")


def _truncated(name: str) -> FetchError:
    return FetchError(
        driver_error=f"Value of {name} was truncated",
        code=1406,
        kind=ErrorKind.VALUE_TRUNCATED,
    )


class DefineBuffer:
    """
    Output arrays of one result column for a batch of `rows` rows.

    The arrays are handed to OCIDefineByPos2 and must stay alive until the
    statement is released or re-defined.
    """

    def __init__(self, connection, column: ColumnDescriptor, position: int, rows: int):
        self.connection = connection
        self.column = column
        self.position = position
        self.rows = rows
        self.charset = connection._charset(column.charset_form)
        self.strategy = column.strategy
        self.sqlt = column.sqlt
        self.value_size = column.buffer_size(self.charset)
        self.indicators = (ctypes.c_int16 * rows)()
        self.lengths = (ctypes.c_uint32 * rows)()
        self.rcodes = (ctypes.c_uint16 * rows)()
        self.define_handle = None
        self.descriptor_type = column.info.descriptor
        self.descriptors = None
        self.data = None
        # Piecewise values collected for the current row
        self.pieces: List[bytes] = []
        self.piece_null = False

        if self.strategy in (Strategy.LOCATOR, Strategy.DESCRIPTOR):
            self.descriptors = (ctypes.c_void_p * rows)()
            for i in range(rows):
                self.descriptors[i] = self._alloc_descriptor().value
            self.data = self.descriptors
        elif self.strategy is not Strategy.PIECEWISE:
            self.data = (ctypes.c_ubyte * (self.value_size * rows))()

    def _alloc_descriptor(self) -> ctypes.c_void_p:
        lib = self.connection._library
        ret, descriptor = lib.descriptor_alloc(self.connection._envhp, self.descriptor_type)
        check_error(
            lib, self.connection._envhp, ret, FetchError, "Allocating descriptor",
            handle_type=HandleType.ENV, connection=self.connection,
        )
        return descriptor

    @property
    def mode(self) -> int:
        if self.strategy is Strategy.PIECEWISE:
            return ConstantsOCI.OCI_DYNAMIC_FETCH.value
        return ConstantsOCI.OCI_DEFAULT.value

    def define(self, stmthp) -> None:
        lib = self.connection._library
        ret, self.define_handle = lib.define_by_pos(
            stmthp, self.connection._errhp, self.position, self.data, self.value_size,
            self.sqlt, self.indicators, self.lengths, self.rcodes, self.mode,
        )
        check_error(
            lib, self.connection._errhp, ret, FetchError,
            f"Defining column {self.column.name}", connection=self.connection,
        )
        if self.column.charset_form == SQLCS_NCHAR and self.strategy is not Strategy.LOCATOR:
            ret = lib.attr_set_int(
                self.define_handle, HandleType.DEFINE, SQLCS_NCHAR, Attribute.CHARSET_FORM,
                self.connection._errhp, kind="ub1",
            )
            check_error(lib, self.connection._errhp, ret, FetchError, "Setting charset form",
                        connection=self.connection)

    def start_row(self) -> None:
        self.pieces = []
        self.piece_null = False

    def add_piece(self, data: bytes, indicator: int) -> None:
        if indicator == ConstantsOCI.OCI_IND_NULL.value:
            self.piece_null = True
        elif data:
            self.pieces.append(data)

    def decode(self, row: int) -> Value:
        """Decode row `row` of the current batch."""
        column = self.column
        if self.strategy is Strategy.PIECEWISE:
            if self.piece_null and not self.pieces:
                return Null(column.type)
            return decode_inline(column.type, b"".join(self.pieces), self.charset)

        indicator = self.indicators[row]
        if indicator == ConstantsOCI.OCI_IND_NULL.value:
            return Null(column.type)
        if indicator == ConstantsOCI.OCI_IND_TRUNCATED_UNKNOWN.value or indicator > 0:
            raise _truncated(column.name)

        if self.strategy is Strategy.DESCRIPTOR:
            descriptor = ctypes.c_void_p(self.descriptors[row])
            if column.type in (OracleType.INTERVAL_YM, OracleType.INTERVAL_DS):
                return decode_interval(self.connection, descriptor, column.type, column.precision, column.scale)
            return decode_timestamp(self.connection, descriptor, column.type, column.scale)

        if self.strategy is Strategy.LOCATOR:
            from oracle_python.lob import Lob as LobObject

            # The locator now belongs to the Lob; the slot gets a fresh one.
            locator = ctypes.c_void_p(self.descriptors[row])
            self.descriptors[row] = self._alloc_descriptor().value
            return Lob(LobObject(self.connection, locator, column.type, self.descriptor_type))

        size = self.lengths[row]
        data = ctypes.string_at(ctypes.addressof(self.data) + row * self.value_size, size)
        return decode_inline(column.type, data, self.charset, as_int64=column.uses_int64)

    def free(self) -> None:
        """Free the descriptors owned by this buffer."""
        if self.descriptors is None:
            return
        lib = self.connection._library
        live = self.connection._descriptors_live
        for i in range(self.rows):
            if self.descriptors[i] and live:
                lib.descriptor_free(ctypes.c_void_p(self.descriptors[i]), self.descriptor_type)
                self.descriptors[i] = None
        self.descriptors = None


def _default_bind_size(spec: BindSpec, charset: Charset) -> int:
    if spec.size:
        return spec.size
    if spec.type in CHARACTER_TYPES:
        return MAX_CHAR_BYTES * charset.max_bytes_per_char
    if spec.type is OracleType.RAW:
        return MAX_RAW_BYTES
    info = TYPE_INFO[spec.type]
    return info.size or MAX_CHAR_BYTES


class BindBuffer:
    """
    Storage of one statement parameter.

    IN values are encoded into the buffer at construction. OUT and IN OUT buffers are
    sized from the declared BindSpec and read back with value() after execution.
    """

    def __init__(self, connection, value: Value, spec: BindSpec, direction: Direction):
        self.connection = connection
        self.spec = spec
        self.direction = direction
        self.info = TYPE_INFO[spec.type]
        self.charset_form = charset_form_of(spec.type)
        self.charset = connection._charset(self.charset_form)
        self.sqlt = self.info.sqlt
        self.indicator = ctypes.c_int16(ConstantsOCI.OCI_IND_NOTNULL.value)
        self.length = ctypes.c_uint32(0)
        self.rcode = ctypes.c_uint16(0)
        self.descriptor = None
        self.lob = None
        self.bind_handle = None

        if self.info.strategy in (Strategy.DESCRIPTOR, Strategy.LOCATOR):
            self._init_pointer(value)
        else:
            self._init_inline(value)

    def _encode(self, value: Value) -> bytes:
        spec = self.spec
        if isinstance(value, Text):
            if value.encoding == self.charset.codec:
                return value.data
            return self.charset.encode(value.value)
        if isinstance(value, Number):
            codecs.check_precision(value.value, spec.precision, spec.scale)
            return codecs.encode_vnu(value.value)
        if isinstance(value, Float32):
            return codecs.encode_float32(value.value)
        if isinstance(value, Float64):
            return codecs.encode_float64(value.value)
        if isinstance(value, Date):
            return codecs.encode_date(value.value)
        if isinstance(value, Raw):
            return value.data
        if isinstance(value, (RowId, UniversalRowId)):
            return value.value.encode("ascii")
        raise BindError(
            driver_error=f"{type(value).__name__} cannot be bound as {spec.type.value}",
            kind=ErrorKind.TYPE_MISMATCH,
        )

    def _init_inline(self, value: Value) -> None:
        data = b"" if value.is_null else self._encode(value)
        if self.direction is Direction.IN:
            size = max(len(data), 1)
            if len(data) > MAX_INLINE_BIND or self.info.strategy is Strategy.PIECEWISE:
                self.sqlt = SQLT.LBI if isinstance(value, Raw) or self.spec.type in (
                    OracleType.RAW, OracleType.LONG_RAW
                ) else SQLT.LNG
        else:
            size = max(_default_bind_size(self.spec, self.charset), len(data), 1)
        if self.spec.type is OracleType.NUMBER:
            self.sqlt = SQLT.VNU
            size = max(size, codecs.VNU_SIZE)
        self.value_size = size
        self.data = (ctypes.c_ubyte * size)()
        ctypes.memmove(self.data, data, len(data))
        self.length.value = len(data)
        if value.is_null:
            self.indicator.value = ConstantsOCI.OCI_IND_NULL.value

    def _init_pointer(self, value: Value) -> None:
        lib = self.connection._library
        envhp, errhp = self.connection._envhp, self.connection._errhp
        self.value_size = POINTER_SIZE
        self.length.value = POINTER_SIZE
        if isinstance(value, Lob):
            self.lob = value.lob
            self.data = (ctypes.c_void_p * 1)(self.lob._locator.value)
            return
        if self.info.strategy is Strategy.LOCATOR and not value.is_null:
            if self.direction is not Direction.IN:
                raise BindError(
                    driver_error=f"{self.spec.type.value} OUT parameters take a LOB locator",
                    kind=ErrorKind.TYPE_MISMATCH,
                )
            # Text or Raw into a LOB parameter: bind inline as LONG / LONG RAW.
            self.info = TYPE_INFO[OracleType.LONG if isinstance(value, Text) else OracleType.LONG_RAW]
            self.sqlt = self.info.sqlt
            self._init_inline(value)
            return

        ret, self.descriptor = lib.descriptor_alloc(envhp, self.info.descriptor)
        check_error(lib, envhp, ret, BindError, "Allocating bind descriptor", handle_type=HandleType.ENV,
                    connection=self.connection)
        self.data = (ctypes.c_void_p * 1)(self.descriptor.value)
        if value.is_null:
            self.indicator.value = ConstantsOCI.OCI_IND_NULL.value
            return
        if isinstance(value, Timestamp):
            ret = lib.datetime_construct(
                envhp, errhp, self.descriptor, value.year, value.month, value.day,
                value.hour, value.minute, value.second, value.nanosecond,
                value.zone.oci_text() if self.spec.type is OracleType.TIMESTAMP_TZ else None,
            )
        elif isinstance(value, IntervalYearMonth):
            ret = lib.interval_set_year_month(envhp, errhp, value.years, value.months, self.descriptor)
        else:
            ret = lib.interval_set_day_second(
                envhp, errhp, value.days, value.hours, value.minutes, value.seconds,
                value.nanoseconds, self.descriptor,
            )
        try:
            check_error(lib, errhp, ret, BindError, "Building bind value", connection=self.connection)
        except Error:
            self.free()
            raise

    def value(self) -> Value:
        """Current value of the parameter (after execution for OUT / IN OUT)."""
        spec = self.spec
        if self.indicator.value == ConstantsOCI.OCI_IND_NULL.value:
            return Null(spec.type)
        if self.indicator.value == ConstantsOCI.OCI_IND_TRUNCATED_UNKNOWN.value or self.indicator.value > 0:
            raise _truncated(f"parameter {spec.type.value}")
        if self.lob is not None:
            return Lob(self.lob)
        if self.descriptor is not None:
            if self.info.strategy is Strategy.LOCATOR:
                from oracle_python.lob import Lob as LobObject

                # The returned locator now belongs to the Lob.
                self.lob = LobObject(self.connection, self.descriptor, spec.type, self.info.descriptor)
                self.descriptor = None
                return Lob(self.lob)
            if spec.type in (OracleType.INTERVAL_YM, OracleType.INTERVAL_DS):
                return decode_interval(
                    self.connection, self.descriptor, spec.type,
                    spec.precision or 9, spec.scale or 9,
                )
            return decode_timestamp(self.connection, self.descriptor, spec.type, spec.scale or 9)
        data = ctypes.string_at(ctypes.addressof(self.data), self.length.value)
        return decode_inline(spec.type, data, self.charset)

    def free(self) -> None:
        if self.descriptor is not None:
            if self.connection._descriptors_live:
                self.connection._library.descriptor_free(self.descriptor, self.info.descriptor)
            self.descriptor = None
