"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Lob class, the streamable handle of CLOB, NCLOB, BLOB and
BFILE values.

A Lob owns its locator and keeps its connection alive. Content is never read at fetch
time; read() and read_chunks() pull it on demand, even after the row that produced the
locator has been consumed.
"""

import ctypes
from typing import Iterator, Optional, Tuple, Union

from oracle_python.constants import ConstantsOCI, DescriptorType, ReturnCode
from oracle_python.diagnostics import check_error
from oracle_python.exceptions import ErrorKind, ExecuteError, FetchError, InterfaceError, ProgrammingError
from oracle_python.helpers import get_settings, log
from oracle_python.values import OracleType

_CHARACTER_LOBS = (OracleType.CLOB, OracleType.NCLOB)

LOB_READONLY = ConstantsOCI.OCI_LOB_READONLY.value
LOB_READWRITE = ConstantsOCI.OCI_LOB_READWRITE.value


class Lob:
    """
    A large object locator.

    Offsets are 1-based. Amounts and lengths count UTF-16 code units for CLOB/NCLOB (one
    per character, two for characters outside the BMP) and bytes for BLOB/BFILE.
    Character LOBs read and write str, the others bytes.
    """

    def __init__(self, connection, locator: ctypes.c_void_p, oracle_type: OracleType,
                 descriptor_type: DescriptorType = DescriptorType.LOB):
        self._connection = connection
        self._locator = locator
        self.type = oracle_type
        self._descriptor_type = descriptor_type
        self._charset_form = (
            ConstantsOCI.SQLCS_NCHAR.value if oracle_type is OracleType.NCLOB
            else ConstantsOCI.SQLCS_IMPLICIT.value
        )
        self._charset = connection._charset(self._charset_form)
        self._freed = False
        connection._register_child(self)

    @property
    def is_character(self) -> bool:
        return self.type in _CHARACTER_LOBS

    @property
    def is_file(self) -> bool:
        return self.type is OracleType.BFILE

    def _check_usable(self) -> None:
        if self._freed:
            raise InterfaceError(driver_error="LOB has been freed", kind=ErrorKind.HANDLE_CLOSED)
        self._connection._check_usable()

    def _check(self, ret: int, error_class, context: str) -> int:
        conn = self._connection
        return check_error(conn._library, conn._errhp, ret, error_class, context, connection=conn)

    def _call(self, error_class, context: str, method: str, *args):
        """Run a library method taking (svchp, errhp, locator, ...) and return its outputs."""
        self._check_usable()
        conn = self._connection
        result = getattr(conn._library, method)(conn._svchp, conn._errhp, self._locator, *args)
        if isinstance(result, tuple):
            self._check(result[0], error_class, context)
            return result[1:] if len(result) > 2 else result[1]
        self._check(result, error_class, context)
        return None

    def length(self) -> int:
        """Current length in UTF-16 code units (CLOB, NCLOB) or bytes (BLOB, BFILE)."""
        return self._call(FetchError, "Reading LOB length", "lob_get_length")

    def capacity(self) -> int:
        """Largest size the LOB can grow to."""
        return self._call(FetchError, "Reading LOB storage limit", "lob_get_storage_limit")

    def chunk_size(self) -> int:
        """Storage chunk size; reads and writes in multiples of it are most efficient."""
        return self._call(FetchError, "Reading LOB chunk size", "lob_get_chunk_size")

    def read(self, offset: int = 1, amount: Optional[int] = None) -> Union[str, bytes]:
        """
        Read `amount` characters/bytes starting at `offset` (1-based). Without an amount
        the rest of the LOB is read. Reading past the end returns an empty value.
        """
        if offset < 1:
            raise ProgrammingError(driver_error="LOB offsets start at 1", kind=ErrorKind.OUT_OF_RANGE)
        if amount is None:
            amount = max(self.length() - offset + 1, 0)
        if amount <= 0:
            return "" if self.is_character else b""

        buffer_size = amount * self._charset.max_bytes_per_char if self.is_character else amount
        opened_here = False
        if self.is_file and not self.is_open():
            self._call(FetchError, "Opening BFILE", "lob_file_open")
            opened_here = True
        try:
            data = self._call(
                FetchError, "Reading LOB", "lob_read",
                offset, amount, buffer_size, self._charset_form, self.is_character,
            )
        finally:
            if opened_here:
                self._call(FetchError, "Closing BFILE", "lob_file_close")
        log('debug', "read: %d bytes at offset %d", len(data), offset)
        return self._charset.decode(data) if self.is_character else data

    def read_chunks(self, chunk_size: Optional[int] = None) -> Iterator[Union[str, bytes]]:
        """Yield the content in successive pieces of `chunk_size` characters/bytes."""
        chunk_size = chunk_size or get_settings().lob_chunk_size
        total = self.length()
        offset = 1
        while offset <= total:
            piece = self.read(offset, min(chunk_size, total - offset + 1))
            if not piece:
                break
            yield piece
            offset += self._amount_of(piece)

    def _amount_of(self, piece: Union[str, bytes]) -> int:
        """Size of `piece` in LOB units: UTF-16 code units for character LOBs, else bytes."""
        if self.is_character:
            return len(piece.encode("utf-16-le")) // 2
        return len(piece)

    def write(self, data: Union[str, bytes], offset: int = 1) -> int:
        """
        Write `data` at `offset` (1-based), extending the LOB as needed.

        Returns:
            int: Characters (CLOB, NCLOB) or bytes (BLOB) written.
        """
        if self.is_file:
            raise ProgrammingError(driver_error="BFILE values are read-only", kind=ErrorKind.TYPE_MISMATCH)
        if offset < 1:
            raise ProgrammingError(driver_error="LOB offsets start at 1", kind=ErrorKind.OUT_OF_RANGE)
        if self.is_character:
            if not isinstance(data, str):
                raise ProgrammingError(driver_error="Character LOBs take str data", kind=ErrorKind.TYPE_MISMATCH)
            encoded, count = self._charset.encode(data), self._amount_of(data)
        else:
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise ProgrammingError(driver_error="Binary LOBs take bytes data", kind=ErrorKind.TYPE_MISMATCH)
            encoded = bytes(data)
            count = len(encoded)
        if not encoded:
            return 0
        return self._call(
            ExecuteError, "Writing LOB", "lob_write",
            offset, encoded, count, self._charset_form, self.is_character,
        )

    def append(self, data: Union[str, bytes, "Lob"]) -> None:
        """Append data, or the full content of another LOB of the same kind."""
        if isinstance(data, Lob):
            data._check_usable()
            self._call(ExecuteError, "Appending LOB", "lob_append", data._locator)
            return
        self.write(data, self.length() + 1)

    def trim(self, new_size: int = 0) -> None:
        self._call(ExecuteError, "Trimming LOB", "lob_trim", new_size)

    def erase(self, offset: int = 1, amount: Optional[int] = None) -> int:
        """Erase (zero-fill / blank-fill) `amount` units from `offset`; returns the amount erased."""
        if amount is None:
            amount = max(self.length() - offset + 1, 0)
        return self._call(ExecuteError, "Erasing LOB", "lob_erase", amount, offset)

    def open(self, mode: int = LOB_READWRITE) -> None:
        """Open the LOB; BFILEs are always opened read-only."""
        if self.is_file:
            self._call(FetchError, "Opening BFILE", "lob_file_open")
        else:
            self._call(ExecuteError, "Opening LOB", "lob_open", mode)

    def close(self) -> None:
        """Close a LOB opened with open()."""
        if self.is_file:
            self._call(FetchError, "Closing BFILE", "lob_file_close")
        else:
            self._call(ExecuteError, "Closing LOB", "lob_close")

    def is_open(self) -> bool:
        return self._call(FetchError, "Checking LOB state", "lob_is_open")

    def is_temporary(self) -> bool:
        self._check_usable()
        conn = self._connection
        ret, flag = conn._library.lob_is_temporary(conn._envhp, conn._errhp, self._locator)
        self._check(ret, FetchError, "Checking LOB state")
        return flag

    def file_exists(self) -> bool:
        self._require_file()
        return self._call(FetchError, "Checking BFILE", "lob_file_exists")

    def file_name(self) -> Tuple[str, str]:
        """(directory alias, file name) of a BFILE."""
        self._require_file()
        self._check_usable()
        conn = self._connection
        ret, directory, name = conn._library.lob_file_get_name(conn._envhp, conn._errhp, self._locator)
        self._check(ret, FetchError, "Reading BFILE name")
        return directory, name

    def set_file_name(self, directory: str, name: str) -> None:
        self._require_file()
        self._check_usable()
        conn = self._connection
        ret = conn._library.lob_file_set_name(
            conn._envhp, conn._errhp, self._locator, directory.encode("utf-8"), name.encode("utf-8")
        )
        self._check(ret, ExecuteError, "Setting BFILE name")

    def _require_file(self) -> None:
        if not self.is_file:
            raise ProgrammingError(driver_error=f"{self.type.value} is not a BFILE", kind=ErrorKind.TYPE_MISMATCH)

    def free(self) -> None:
        """
        Release the locator (and the temporary LOB behind it). Idempotent. Errors from
        a dead session are ignored since the server has already dropped the LOB.
        """
        if self._freed:
            return
        conn = self._connection
        lib = conn._library
        try:
            if not conn._closed and not conn._invalidated and not self.is_file:
                ret, temporary = lib.lob_is_temporary(conn._envhp, conn._errhp, self._locator)
                if ret == ReturnCode.SUCCESS and temporary:
                    lib.lob_free_temporary(conn._svchp, conn._errhp, self._locator)
        finally:
            if conn._descriptors_live:
                lib.descriptor_free(self._locator, self._descriptor_type)
            self._freed = True
            self._locator = None

    _release = free

    def __eq__(self, other):
        if not isinstance(other, Lob):
            return NotImplemented
        if self is other:
            return True
        if self._freed or other._freed:
            return False
        conn = self._connection
        ret, equal = conn._library.lob_is_equal(conn._envhp, self._locator, other._locator)
        self._check(ret, FetchError, "Comparing LOB locators")
        return equal

    __hash__ = object.__hash__

    def __repr__(self):
        state = "freed" if self._freed else "live"
        return f"<oracle_python.Lob {self.type.value} ({state})>"

    def __del__(self):
        if not getattr(self, "_freed", True):
            try:
                self.free()
            except Exception as e:
                log('debug', "LOB cleanup during garbage collection failed: %s", e)
