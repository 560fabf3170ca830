"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the ResultSet class, the row stream of an executed query.

A ResultSet is lazy, finite and not restartable. Rows are fetched from the server in
batches of `arraysize` rows (one row at a time when a LONG / LONG RAW column is present)
and decoded into Row objects. Once the end of data is reached the result set stays
exhausted; re-executing or closing the statement also exhausts it.
"""

import ctypes
import datetime
from collections import deque
from typing import Any, Dict, Iterator, List, Optional

from oracle_python.constants import Attribute, HandleType, ReturnCode
from oracle_python.exceptions import Error, ErrorKind, FetchError, ProgrammingError
from oracle_python.helpers import get_settings, log
from oracle_python.row import Row
from oracle_python.typesystem import CHARACTER_TYPES, ColumnDescriptor, DefineBuffer, Strategy
from oracle_python.values import OracleType


class ResultSet:
    """
    Rows of an executed query.

    Attributes:
        columns: Column descriptors of the query.
        rowcount: Rows returned to the caller so far.
    """

    def __init__(self, statement, columns: List[ColumnDescriptor]) -> None:
        self._statement = statement
        self._connection = statement.connection
        self.columns = columns
        self.rowcount = 0
        self._piecewise = any(c.strategy is Strategy.PIECEWISE for c in columns)
        self._batch_size = 1 if self._piecewise else max(int(statement.arraysize), 1)
        self._rows = deque()
        self._server_done = False
        self._exhausted = False
        self._buffers: List[DefineBuffer] = []

        settings = get_settings()
        self._lowercase = settings.lowercase
        self._piece_size = settings.long_piece_size
        self._column_map: Dict[str, int] = {}
        for index, column in enumerate(columns):
            self._column_map[column.name] = index
            if self._lowercase:
                self._column_map[column.name.lower()] = index

        try:
            for position, column in enumerate(columns, 1):
                buffer = DefineBuffer(self._connection, column, position, self._batch_size)
                self._buffers.append(buffer)
                buffer.define(statement._stmthp)
        except Exception:
            self._free_buffers()
            raise
        self._by_define_handle = {
            b.define_handle.value: b for b in self._buffers if b.define_handle is not None
        }
        log('debug', "Result set with %d columns, batch size %d", len(columns), self._batch_size)

    @property
    def description(self) -> List[tuple]:
        return self._statement.description

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def _fetch(self, nrows: int) -> int:
        conn = self._connection
        ret = conn._library.stmt_fetch(self._statement._stmthp, conn._errhp, nrows)
        return self._statement._check(ret, FetchError, "Fetching rows")

    def _rows_fetched(self) -> int:
        conn = self._connection
        ret, count = conn._library.attr_get(
            self._statement._stmthp, HandleType.STMT, Attribute.ROWS_FETCHED, conn._errhp
        )
        self._statement._check(ret, FetchError, "Reading fetched row count")
        return count

    def _fetch_pieces(self) -> int:
        """Fetch one row, polling LONG / LONG RAW pieces until the row is complete."""
        conn = self._connection
        lib = conn._library
        stmthp = self._statement._stmthp
        for buffer in self._buffers:
            buffer.start_row()

        pending = None
        ret = self._fetch(1)
        while ret == ReturnCode.NEED_DATA:
            if pending is not None:
                self._collect_piece(*pending)
            status, handle, handle_type, _, _, _, piece = lib.stmt_get_piece_info(stmthp, conn._errhp)
            self._statement._check(status, FetchError, "Reading piece information")
            buffer = self._by_define_handle.get(handle.value)
            if buffer is None:
                raise FetchError(driver_error="Piece requested for an unknown column", kind=ErrorKind.UNCLASSIFIED)
            data = (ctypes.c_ubyte * self._piece_size)()
            length = ctypes.c_uint32(self._piece_size)
            indicator = ctypes.c_int16(0)
            rcode = ctypes.c_uint16(0)
            status = lib.stmt_set_piece_info(handle, handle_type, conn._errhp, data, length, piece, indicator, rcode)
            self._statement._check(status, FetchError, "Setting piece buffer")
            pending = (buffer, data, length, indicator)
            ret = self._fetch(1)
        if pending is not None:
            self._collect_piece(*pending)
        return ret

    @staticmethod
    def _collect_piece(buffer: DefineBuffer, data, length, indicator) -> None:
        buffer.add_piece(ctypes.string_at(data, length.value), indicator.value)

    def _fetch_batch(self) -> None:
        if self._piecewise:
            ret = self._fetch_pieces()
        else:
            ret = self._fetch(self._batch_size)
        count = self._rows_fetched()
        if ret == ReturnCode.NO_DATA or count < self._batch_size:
            self._server_done = True
        try:
            rows = [
                Row([buffer.decode(row) for buffer in self._buffers], self._column_map, self._lowercase)
                for row in range(count)
            ]
        except Error:
            # A batch is delivered whole or not at all
            self._exhaust()
            raise
        self._rows.extend(rows)
        log('debug', "Fetched batch of %d rows", count)

    def _next_row(self) -> Optional[Row]:
        while not self._rows:
            if self._server_done:
                self._exhaust()
                return None
            self._fetch_batch()
        self.rowcount += 1
        return self._rows.popleft()

    def fetchone(self) -> Optional[Row]:
        """
        Fetch the next row.

        Returns:
            Row, or None once the result set is exhausted (also on every later call).

        Raises:
            InterfaceError: The statement or connection is closed or lost.
            FetchError: A value was truncated or the fetch failed.
        """
        self._statement._check_open()
        if self._exhausted:
            return None
        return self._next_row()

    def fetchmany(self, size: Optional[int] = None) -> List[Row]:
        """
        Fetch up to `size` rows (default: the statement's arraysize).

        Returns:
            List of Row objects; empty once the result set is exhausted.
        """
        self._statement._check_open()
        if size is None:
            size = self._statement.arraysize
        if size < 0:
            raise ProgrammingError(driver_error="fetchmany size must not be negative", kind=ErrorKind.OUT_OF_RANGE)
        rows = []
        while len(rows) < size and not self._exhausted:
            row = self._next_row()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self) -> List[Row]:
        """Fetch all remaining rows."""
        self._statement._check_open()
        rows = []
        while not self._exhausted:
            row = self._next_row()
            if row is None:
                break
            rows.append(row)
        return rows

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def _free_buffers(self) -> None:
        for buffer in self._buffers:
            buffer.free()
        self._buffers = []
        self._by_define_handle = {}

    def _exhaust(self) -> None:
        """Enter the terminal state and release the define buffers."""
        if self._exhausted:
            return
        self._exhausted = True
        self._server_done = True
        self._rows.clear()
        self._free_buffers()

    def fetch_arrow_table(self):
        """
        Fetch all remaining rows into a pyarrow.Table.

        Column types follow the Oracle types: NUMBER(p<=18) as int64, constrained NUMBER as
        decimal128, unconstrained NUMBER as float64, LOB contents are read in full.

        Raises:
            ImportError: pyarrow is not installed (pip install oracle-python[arrow]).
        """
        import pyarrow as pa

        rows = self.fetchall()
        arrays = []
        for index, column in enumerate(self.columns):
            arrow_type = arrow_type_of(pa, column)
            data = [_arrow_value(row.values()[index], column) for row in rows]
            arrays.append(pa.array(data, type=arrow_type))
        names = [d[0] for d in self._statement.description]
        return pa.Table.from_arrays(arrays, names=names)


def arrow_type_of(pa, column: ColumnDescriptor):
    """pyarrow DataType of a result column."""
    oracle_type = column.type
    if oracle_type is OracleType.NUMBER:
        if column.uses_int64:
            return pa.int64()
        if 0 < column.precision <= 38 and 0 <= column.scale <= column.precision:
            return pa.decimal128(column.precision, column.scale)
        return pa.float64()
    if oracle_type is OracleType.BINARY_FLOAT:
        return pa.float32()
    if oracle_type is OracleType.BINARY_DOUBLE:
        return pa.float64()
    if oracle_type in (OracleType.CLOB, OracleType.NCLOB, OracleType.LONG):
        return pa.large_string()
    if oracle_type in CHARACTER_TYPES or oracle_type in (OracleType.ROWID, OracleType.UROWID):
        return pa.string()
    if oracle_type in (OracleType.BLOB, OracleType.BFILE, OracleType.LONG_RAW):
        return pa.large_binary()
    if oracle_type is OracleType.RAW:
        return pa.binary()
    if oracle_type is OracleType.DATE:
        return pa.timestamp("s")
    if oracle_type is OracleType.TIMESTAMP:
        return pa.timestamp("us")
    if oracle_type in (OracleType.TIMESTAMP_TZ, OracleType.TIMESTAMP_LTZ):
        return pa.timestamp("us", tz="UTC")
    if oracle_type is OracleType.INTERVAL_DS:
        return pa.duration("us")
    if oracle_type is OracleType.INTERVAL_YM:
        return pa.month_day_nano_interval()
    raise ProgrammingError(
        driver_error=f"No Arrow type for {oracle_type.value}",
        kind=ErrorKind.TYPE_MISMATCH,
    )


def _arrow_value(value, column: ColumnDescriptor) -> Any:
    if value.is_null:
        return None
    oracle_type = column.type
    if oracle_type in (OracleType.CLOB, OracleType.NCLOB, OracleType.BLOB, OracleType.BFILE):
        return value.lob.read()
    if oracle_type is OracleType.INTERVAL_YM:
        return (value.total_months, 0, 0)
    if oracle_type is OracleType.NUMBER and not column.uses_int64:
        if not (0 < column.precision <= 38 and 0 <= column.scale <= column.precision):
            return float(value.value)
        return value.value
    python_value = value.to_python()
    if oracle_type in (OracleType.TIMESTAMP_TZ, OracleType.TIMESTAMP_LTZ):
        return python_value.astimezone(datetime.timezone.utc)
    return python_value
