"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module binds the Oracle Call Interface (OCI) client library with ctypes.

OCILibrary loads libclntsh (oci.dll on Windows) and exposes the OCI entry points
used by the driver as thin methods. Each method returns the OCI status code first,
followed by any output values; status checking is done by the caller through
oracle_python.diagnostics. Handles and descriptors are passed around as
ctypes.c_void_p values. Buffers are ctypes arrays owned by the caller.
"""

import ctypes
import os
import sys
import threading
from ctypes import (
    byref,
    c_byte,
    c_char_p,
    c_int,
    c_int16,
    c_int32,
    c_int64,
    c_size_t,
    c_ubyte,
    c_uint16,
    c_uint32,
    c_uint64,
    c_void_p,
    create_string_buffer,
)
from ctypes.util import find_library
from typing import Dict, Optional, Tuple

from oracle_python.constants import ConstantsOCI, HandleType
from oracle_python.exceptions import ErrorKind, InitError
from oracle_python.helpers import log

# OCI scalar types
sword = c_int
sb1 = c_byte
ub1 = c_ubyte
sb2 = c_int16
ub2 = c_uint16
sb4 = c_int32
ub4 = c_uint32
sb8 = c_int64
ub8 = c_uint64
boolean = c_int
dvoidp = c_void_p

# name -> (restype, argtypes)
_PROTOTYPES = {
    # Connect, authorize, initialize
    "OCIEnvNlsCreate": (sword, [dvoidp, ub4, dvoidp, dvoidp, dvoidp, dvoidp, c_size_t, dvoidp, ub2, ub2]),
    "OCIServerAttach": (sword, [dvoidp, dvoidp, c_char_p, sb4, ub4]),
    "OCIServerDetach": (sword, [dvoidp, dvoidp, ub4]),
    "OCISessionBegin": (sword, [dvoidp, dvoidp, dvoidp, ub4, ub4]),
    "OCISessionEnd": (sword, [dvoidp, dvoidp, dvoidp, ub4]),
    # Handles and descriptors
    "OCIHandleAlloc": (sword, [dvoidp, dvoidp, ub4, c_size_t, dvoidp]),
    "OCIHandleFree": (sword, [dvoidp, ub4]),
    "OCIDescriptorAlloc": (sword, [dvoidp, dvoidp, ub4, c_size_t, dvoidp]),
    "OCIDescriptorFree": (sword, [dvoidp, ub4]),
    "OCIAttrGet": (sword, [dvoidp, ub4, dvoidp, dvoidp, ub4, dvoidp]),
    "OCIAttrSet": (sword, [dvoidp, ub4, dvoidp, ub4, ub4, dvoidp]),
    "OCIParamGet": (sword, [dvoidp, ub4, dvoidp, dvoidp, ub4]),
    "OCIErrorGet": (sword, [dvoidp, ub4, dvoidp, dvoidp, dvoidp, ub4, ub4]),
    # Statements
    "OCIStmtPrepare2": (sword, [dvoidp, dvoidp, dvoidp, c_char_p, ub4, c_char_p, ub4, ub4, ub4]),
    "OCIStmtRelease": (sword, [dvoidp, dvoidp, c_char_p, ub4, ub4]),
    "OCIStmtExecute": (sword, [dvoidp, dvoidp, dvoidp, ub4, ub4, dvoidp, dvoidp, ub4]),
    "OCIStmtFetch2": (sword, [dvoidp, dvoidp, ub4, ub2, sb4, ub4]),
    "OCIStmtGetPieceInfo": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIStmtSetPieceInfo": (sword, [dvoidp, ub4, dvoidp, dvoidp, dvoidp, ub1, dvoidp, dvoidp]),
    "OCIDefineByPos2": (sword, [dvoidp, dvoidp, dvoidp, ub4, dvoidp, sb8, ub2, dvoidp, dvoidp, dvoidp, ub4]),
    "OCIBindByName2": (sword, [dvoidp, dvoidp, dvoidp, c_char_p, sb4, dvoidp, sb8, ub2, dvoidp, dvoidp, dvoidp, ub4, dvoidp, ub4]),
    "OCIBindByPos2": (sword, [dvoidp, dvoidp, dvoidp, ub4, dvoidp, sb8, ub2, dvoidp, dvoidp, dvoidp, ub4, dvoidp, ub4]),
    # Transactions and miscellaneous
    "OCITransCommit": (sword, [dvoidp, dvoidp, ub4]),
    "OCITransRollback": (sword, [dvoidp, dvoidp, ub4]),
    "OCIBreak": (sword, [dvoidp, dvoidp]),
    "OCIReset": (sword, [dvoidp, dvoidp]),
    "OCIPing": (sword, [dvoidp, dvoidp, ub4]),
    "OCIServerRelease": (sword, [dvoidp, dvoidp, dvoidp, ub4, ub1, dvoidp]),
    "OCIClientVersion": (None, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCINlsCharSetNameToId": (ub2, [dvoidp, c_char_p]),
    # Datetime and interval
    "OCIDateTimeGetDate": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIDateTimeGetTime": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIDateTimeGetTimeZoneOffset": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIDateTimeGetTimeZoneName": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIDateTimeConstruct": (sword, [dvoidp, dvoidp, dvoidp, sb2, ub1, ub1, ub1, ub1, ub1, ub4, c_char_p, c_size_t]),
    "OCIDateTimeSysTimeStamp": (sword, [dvoidp, dvoidp, dvoidp]),
    "OCIIntervalGetYearMonth": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIIntervalGetDaySecond": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCIIntervalSetYearMonth": (sword, [dvoidp, dvoidp, sb4, sb4, dvoidp]),
    "OCIIntervalSetDaySecond": (sword, [dvoidp, dvoidp, sb4, sb4, sb4, sb4, sb4, dvoidp]),
    # LOB
    "OCILobGetLength2": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobGetStorageLimit": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobGetChunkSize": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobRead2": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, ub8, dvoidp, ub8, ub1, dvoidp, dvoidp, ub2, ub1]),
    "OCILobWrite2": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, ub8, dvoidp, ub8, ub1, dvoidp, dvoidp, ub2, ub1]),
    "OCILobTrim2": (sword, [dvoidp, dvoidp, dvoidp, ub8]),
    "OCILobErase2": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, ub8]),
    "OCILobAppend": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobOpen": (sword, [dvoidp, dvoidp, dvoidp, ub1]),
    "OCILobClose": (sword, [dvoidp, dvoidp, dvoidp]),
    "OCILobIsOpen": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobIsTemporary": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobCreateTemporary": (sword, [dvoidp, dvoidp, dvoidp, ub2, ub1, ub1, boolean, ub2]),
    "OCILobFreeTemporary": (sword, [dvoidp, dvoidp, dvoidp]),
    "OCILobIsEqual": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobFileExists": (sword, [dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobFileGetName": (sword, [dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp, dvoidp]),
    "OCILobFileSetName": (sword, [dvoidp, dvoidp, dvoidp, c_char_p, ub2, c_char_p, ub2]),
    "OCILobFileOpen": (sword, [dvoidp, dvoidp, dvoidp, ub1]),
    "OCILobFileClose": (sword, [dvoidp, dvoidp, dvoidp]),
}

# ctypes type per attribute value kind
_ATTR_TYPES = {
    "ub1": ub1,
    "sb1": sb1,
    "ub2": ub2,
    "sb2": sb2,
    "ub4": ub4,
    "sb4": sb4,
    "ub8": ub8,
}

_DEFAULT = ConstantsOCI.OCI_DEFAULT.value


def _library_candidates(filename: Optional[str]) -> list:
    """Ordered list of library paths/names to try."""
    if filename:
        return [filename]
    explicit = os.environ.get("ORACLE_PYTHON_CLIENT_LIB")
    if explicit:
        return [explicit]

    if sys.platform == "win32":
        names = ["oci.dll"]
    elif sys.platform == "darwin":
        names = ["libclntsh.dylib"]
    else:
        names = ["libclntsh.so"]

    candidates = []
    oracle_home = os.environ.get("ORACLE_HOME")
    if oracle_home:
        for name in names:
            # Full client keeps the library under lib/ (bin/ on Windows);
            # Instant Client keeps it in the home directory itself.
            subdir = "bin" if sys.platform == "win32" else "lib"
            candidates.append(os.path.join(oracle_home, subdir, name))
            candidates.append(os.path.join(oracle_home, name))
    found = find_library("oci" if sys.platform == "win32" else "clntsh")
    if found:
        candidates.append(found)
    candidates.extend(names)
    return candidates


class OCILibrary:
    """
    Loaded OCI client library.

    Arguments:
        filename: Path of the client library. When omitted the library is searched
            via ORACLE_PYTHON_CLIENT_LIB, ORACLE_HOME and ctypes.util.find_library().

    Attributes:
        client_library: The ctypes.CDLL handle.
        client_library_name: Path or name the library was loaded from.

    Raises:
        InitError: If the library cannot be located or loaded.
    """

    def __init__(self, filename: Optional[str] = None):
        errors = []
        self.client_library = None
        for candidate in _library_candidates(filename):
            if os.path.isabs(candidate) and not os.path.exists(candidate):
                continue
            try:
                self.client_library = ctypes.CDLL(candidate)
            except OSError as e:
                errors.append(f"{candidate}: {e}")
                continue
            self.client_library_name = candidate
            break
        if self.client_library is None:
            raise InitError(
                driver_error="Oracle client library could not be loaded; set ORACLE_HOME",
                oci_error="; ".join(errors),
                kind=ErrorKind.LIBRARY_NOT_LOADED,
            )
        for name, (restype, argtypes) in _PROTOTYPES.items():
            try:
                function = getattr(self.client_library, name)
            except AttributeError as e:
                raise InitError(
                    driver_error=f"Oracle client library lacks {name}; client 12.1 or later is required",
                    oci_error=str(e),
                    kind=ErrorKind.LIBRARY_NOT_LOADED,
                ) from e
            function.restype = restype
            function.argtypes = argtypes
            setattr(self, name, function)
        log('info', "Loaded Oracle client library %s", self.client_library_name)

    # Environment, handles, descriptors

    def env_create(self, mode: int, charset: int, ncharset: int) -> Tuple[int, c_void_p]:
        envhp = c_void_p()
        ret = self.OCIEnvNlsCreate(byref(envhp), mode, None, None, None, None, 0, None, charset, ncharset)
        return ret, envhp

    def charset_id(self, envhp, name: str) -> int:
        return self.OCINlsCharSetNameToId(envhp, name.encode("ascii"))

    def handle_alloc(self, parent, handle_type: int) -> Tuple[int, c_void_p]:
        handle = c_void_p()
        ret = self.OCIHandleAlloc(parent, byref(handle), handle_type, 0, None)
        return ret, handle

    def handle_free(self, handle, handle_type: int) -> int:
        return self.OCIHandleFree(handle, handle_type)

    def descriptor_alloc(self, envhp, descriptor_type: int) -> Tuple[int, c_void_p]:
        descriptor = c_void_p()
        ret = self.OCIDescriptorAlloc(envhp, byref(descriptor), descriptor_type, 0, None)
        return ret, descriptor

    def descriptor_free(self, descriptor, descriptor_type: int) -> int:
        return self.OCIDescriptorFree(descriptor, descriptor_type)

    def error_get(self, handle, record: int, handle_type: int) -> Tuple[int, int, str]:
        """Return (status, ORA code, message) of diagnostic record number `record`."""
        code = sb4()
        size = ConstantsOCI.OCI_ERROR_MAXMSG_SIZE.value
        buffer = create_string_buffer(size)
        ret = self.OCIErrorGet(handle, record, None, byref(code), buffer, size, handle_type)
        return ret, code.value, buffer.value.decode("utf-8", errors="replace")

    def attr_get(self, handle, handle_type: int, attribute: int, errhp, kind: str = "ub4"):
        """
        Read an attribute. kind is one of ub1/sb1/ub2/sb2/ub4/sb4/ub8 for
        scalars, "text" for (pointer, length) strings and "handle" for handles.
        """
        if kind == "text":
            pointer = c_char_p()
            size = ub4()
            ret = self.OCIAttrGet(handle, handle_type, byref(pointer), byref(size), attribute, errhp)
            value = ctypes.string_at(pointer, size.value) if pointer.value else b""
            return ret, value
        if kind == "handle":
            value = c_void_p()
            ret = self.OCIAttrGet(handle, handle_type, byref(value), None, attribute, errhp)
            return ret, value
        value = _ATTR_TYPES[kind]()
        ret = self.OCIAttrGet(handle, handle_type, byref(value), None, attribute, errhp)
        return ret, value.value

    def attr_set_handle(self, handle, handle_type: int, target, attribute: int, errhp) -> int:
        return self.OCIAttrSet(handle, handle_type, target, 0, attribute, errhp)

    def attr_set_text(self, handle, handle_type: int, value: bytes, attribute: int, errhp) -> int:
        buffer = create_string_buffer(value, len(value))
        return self.OCIAttrSet(handle, handle_type, buffer, len(value), attribute, errhp)

    def attr_set_int(self, handle, handle_type: int, value: int, attribute: int, errhp, kind: str = "ub4") -> int:
        holder = _ATTR_TYPES[kind](value)
        return self.OCIAttrSet(handle, handle_type, byref(holder), ctypes.sizeof(holder), attribute, errhp)

    def param_get(self, stmthp, errhp, position: int) -> Tuple[int, c_void_p]:
        param = c_void_p()
        ret = self.OCIParamGet(stmthp, HandleType.STMT, errhp, byref(param), position)
        return ret, param

    # Connect / authorize

    def server_attach(self, srvhp, errhp, dblink: bytes, mode: int) -> int:
        return self.OCIServerAttach(srvhp, errhp, dblink or None, len(dblink), mode)

    def server_detach(self, srvhp, errhp) -> int:
        return self.OCIServerDetach(srvhp, errhp, _DEFAULT)

    def session_begin(self, svchp, errhp, usrhp, credentials: int, mode: int) -> int:
        return self.OCISessionBegin(svchp, errhp, usrhp, credentials, mode)

    def session_end(self, svchp, errhp, usrhp) -> int:
        return self.OCISessionEnd(svchp, errhp, usrhp, _DEFAULT)

    def server_release(self, handle, errhp, handle_type: int) -> Tuple[int, str, int]:
        size = ConstantsOCI.OCI_SERVER_RELEASE_BANNER_SIZE.value
        banner = create_string_buffer(size)
        version = ub4()
        ret = self.OCIServerRelease(handle, errhp, banner, size, handle_type, byref(version))
        return ret, banner.value.decode("utf-8", errors="replace"), version.value

    def client_version(self) -> Tuple[int, int, int, int, int]:
        parts = [sword() for _ in range(5)]
        self.OCIClientVersion(*[byref(p) for p in parts])
        return tuple(p.value for p in parts)

    def trans_commit(self, svchp, errhp) -> int:
        return self.OCITransCommit(svchp, errhp, _DEFAULT)

    def trans_rollback(self, svchp, errhp) -> int:
        return self.OCITransRollback(svchp, errhp, _DEFAULT)

    def break_(self, svchp, errhp) -> int:
        return self.OCIBreak(svchp, errhp)

    def reset(self, svchp, errhp) -> int:
        return self.OCIReset(svchp, errhp)

    def ping(self, svchp, errhp) -> int:
        return self.OCIPing(svchp, errhp, _DEFAULT)

    # Statements

    def stmt_prepare(self, svchp, errhp, sql: bytes) -> Tuple[int, c_void_p]:
        stmthp = c_void_p()
        ret = self.OCIStmtPrepare2(
            svchp, byref(stmthp), errhp, sql, len(sql), None, 0,
            ConstantsOCI.OCI_NTV_SYNTAX.value, _DEFAULT,
        )
        return ret, stmthp

    def stmt_release(self, stmthp, errhp) -> int:
        return self.OCIStmtRelease(stmthp, errhp, None, 0, _DEFAULT)

    def stmt_execute(self, svchp, stmthp, errhp, iters: int, mode: int) -> int:
        return self.OCIStmtExecute(svchp, stmthp, errhp, iters, 0, None, None, mode)

    def stmt_fetch(self, stmthp, errhp, nrows: int) -> int:
        return self.OCIStmtFetch2(stmthp, errhp, nrows, ConstantsOCI.OCI_FETCH_NEXT.value, 0, _DEFAULT)

    def stmt_get_piece_info(self, stmthp, errhp):
        """Return (status, handle, handle type, in_out, iteration, index, piece)."""
        handle = c_void_p()
        handle_type = ub4()
        in_out = ub1()
        iteration = ub4()
        index = ub4()
        piece = ub1()
        ret = self.OCIStmtGetPieceInfo(
            stmthp, errhp, byref(handle), byref(handle_type), byref(in_out),
            byref(iteration), byref(index), byref(piece),
        )
        return ret, handle, handle_type.value, in_out.value, iteration.value, index.value, piece.value

    def stmt_set_piece_info(self, handle, handle_type: int, errhp, buffer, length, piece: int, indicator, rcode) -> int:
        """buffer is a ctypes array; length (ub4), indicator (sb2), rcode (ub2) are ctypes scalars."""
        return self.OCIStmtSetPieceInfo(
            handle, handle_type, errhp, buffer, byref(length), piece, byref(indicator), byref(rcode)
        )

    def define_by_pos(self, stmthp, errhp, position: int, buffer, value_size: int, dty: int,
                      indicators, lengths, rcodes, mode: int) -> Tuple[int, c_void_p]:
        defnp = c_void_p()
        ret = self.OCIDefineByPos2(
            stmthp, byref(defnp), errhp, position, buffer, value_size, dty,
            indicators, lengths, rcodes, mode,
        )
        return ret, defnp

    def bind_by_name(self, stmthp, errhp, name: bytes, buffer, value_size: int, dty: int,
                     indicator, length, rcode) -> Tuple[int, c_void_p]:
        """indicator (sb2), length (ub4) and rcode (ub2) are ctypes scalars."""
        bindp = c_void_p()
        ret = self.OCIBindByName2(
            stmthp, byref(bindp), errhp, name, len(name), buffer, value_size, dty,
            byref(indicator), byref(length), byref(rcode), 0, None, _DEFAULT,
        )
        return ret, bindp

    def bind_by_pos(self, stmthp, errhp, position: int, buffer, value_size: int, dty: int,
                    indicator, length, rcode) -> Tuple[int, c_void_p]:
        bindp = c_void_p()
        ret = self.OCIBindByPos2(
            stmthp, byref(bindp), errhp, position, buffer, value_size, dty,
            byref(indicator), byref(length), byref(rcode), 0, None, _DEFAULT,
        )
        return ret, bindp

    # Datetime / interval descriptors

    def datetime_get_date(self, hndl, errhp, descriptor) -> Tuple[int, int, int, int]:
        year, month, day = sb2(), ub1(), ub1()
        ret = self.OCIDateTimeGetDate(hndl, errhp, descriptor, byref(year), byref(month), byref(day))
        return ret, year.value, month.value, day.value

    def datetime_get_time(self, hndl, errhp, descriptor) -> Tuple[int, int, int, int, int]:
        hour, minute, second, fsec = ub1(), ub1(), ub1(), ub4()
        ret = self.OCIDateTimeGetTime(
            hndl, errhp, descriptor, byref(hour), byref(minute), byref(second), byref(fsec)
        )
        return ret, hour.value, minute.value, second.value, fsec.value

    def datetime_get_tz_offset(self, hndl, errhp, descriptor) -> Tuple[int, int, int]:
        hours, minutes = sb1(), sb1()
        ret = self.OCIDateTimeGetTimeZoneOffset(hndl, errhp, descriptor, byref(hours), byref(minutes))
        return ret, hours.value, minutes.value

    def datetime_get_tz_name(self, hndl, errhp, descriptor) -> Tuple[int, str]:
        buffer = create_string_buffer(64)
        length = ub4(64)
        ret = self.OCIDateTimeGetTimeZoneName(hndl, errhp, descriptor, buffer, byref(length))
        return ret, buffer.raw[: length.value].decode("ascii", errors="replace")

    def datetime_construct(self, hndl, errhp, descriptor, year, month, day, hour, minute,
                           second, fsec, timezone: Optional[bytes]) -> int:
        return self.OCIDateTimeConstruct(
            hndl, errhp, descriptor, year, month, day, hour, minute, second, fsec,
            timezone, len(timezone) if timezone else 0,
        )

    def datetime_sys_timestamp(self, hndl, errhp, descriptor) -> int:
        return self.OCIDateTimeSysTimeStamp(hndl, errhp, descriptor)

    def interval_get_year_month(self, hndl, errhp, descriptor) -> Tuple[int, int, int]:
        years, months = sb4(), sb4()
        ret = self.OCIIntervalGetYearMonth(hndl, errhp, byref(years), byref(months), descriptor)
        return ret, years.value, months.value

    def interval_get_day_second(self, hndl, errhp, descriptor) -> Tuple[int, int, int, int, int, int]:
        parts = [sb4() for _ in range(5)]
        ret = self.OCIIntervalGetDaySecond(hndl, errhp, *[byref(p) for p in parts], descriptor)
        return (ret,) + tuple(p.value for p in parts)

    def interval_set_year_month(self, hndl, errhp, years: int, months: int, descriptor) -> int:
        return self.OCIIntervalSetYearMonth(hndl, errhp, years, months, descriptor)

    def interval_set_day_second(self, hndl, errhp, days, hours, minutes, seconds, fsec, descriptor) -> int:
        return self.OCIIntervalSetDaySecond(hndl, errhp, days, hours, minutes, seconds, fsec, descriptor)

    # LOB locators

    def lob_get_length(self, svchp, errhp, locator) -> Tuple[int, int]:
        length = ub8()
        ret = self.OCILobGetLength2(svchp, errhp, locator, byref(length))
        return ret, length.value

    def lob_get_storage_limit(self, svchp, errhp, locator) -> Tuple[int, int]:
        limit = ub8()
        ret = self.OCILobGetStorageLimit(svchp, errhp, locator, byref(limit))
        return ret, limit.value

    def lob_get_chunk_size(self, svchp, errhp, locator) -> Tuple[int, int]:
        size = ub4()
        ret = self.OCILobGetChunkSize(svchp, errhp, locator, byref(size))
        return ret, size.value

    def lob_read(self, svchp, errhp, locator, offset: int, amount: int, buffer_size: int,
                 charset_form: int, is_character: bool) -> Tuple[int, bytes]:
        """
        Read `amount` characters (character LOBs) or bytes starting at the
        1-based `offset` in a single piece.
        """
        byte_amount = ub8(0 if is_character else amount)
        char_amount = ub8(amount if is_character else 0)
        buffer = create_string_buffer(max(buffer_size, 1))
        ret = self.OCILobRead2(
            svchp, errhp, locator, byref(byte_amount), byref(char_amount), offset,
            buffer, buffer_size, ConstantsOCI.OCI_ONE_PIECE.value, None, None, 0, charset_form,
        )
        return ret, buffer.raw[: byte_amount.value]

    def lob_write(self, svchp, errhp, locator, offset: int, data: bytes, char_count: int,
                  charset_form: int, is_character: bool) -> Tuple[int, int]:
        byte_amount = ub8(len(data))
        char_amount = ub8(char_count if is_character else 0)
        buffer = create_string_buffer(data, len(data))
        ret = self.OCILobWrite2(
            svchp, errhp, locator, byref(byte_amount), byref(char_amount), offset,
            buffer, len(data), ConstantsOCI.OCI_ONE_PIECE.value, None, None, 0, charset_form,
        )
        return ret, (char_amount.value if is_character else byte_amount.value)

    def lob_trim(self, svchp, errhp, locator, new_length: int) -> int:
        return self.OCILobTrim2(svchp, errhp, locator, new_length)

    def lob_erase(self, svchp, errhp, locator, amount: int, offset: int) -> Tuple[int, int]:
        erased = ub8(amount)
        ret = self.OCILobErase2(svchp, errhp, locator, byref(erased), offset)
        return ret, erased.value

    def lob_append(self, svchp, errhp, destination, source) -> int:
        return self.OCILobAppend(svchp, errhp, destination, source)

    def lob_open(self, svchp, errhp, locator, mode: int) -> int:
        return self.OCILobOpen(svchp, errhp, locator, mode)

    def lob_close(self, svchp, errhp, locator) -> int:
        return self.OCILobClose(svchp, errhp, locator)

    def lob_is_open(self, svchp, errhp, locator) -> Tuple[int, bool]:
        flag = boolean()
        ret = self.OCILobIsOpen(svchp, errhp, locator, byref(flag))
        return ret, bool(flag.value)

    def lob_is_temporary(self, envhp, errhp, locator) -> Tuple[int, bool]:
        flag = boolean()
        ret = self.OCILobIsTemporary(envhp, errhp, locator, byref(flag))
        return ret, bool(flag.value)

    def lob_create_temporary(self, svchp, errhp, locator, charset_form: int, lob_type: int) -> int:
        return self.OCILobCreateTemporary(
            svchp, errhp, locator, 0, charset_form, lob_type, 0,
            ConstantsOCI.OCI_DURATION_SESSION.value,
        )

    def lob_free_temporary(self, svchp, errhp, locator) -> int:
        return self.OCILobFreeTemporary(svchp, errhp, locator)

    def lob_is_equal(self, envhp, first, second) -> Tuple[int, bool]:
        flag = boolean()
        ret = self.OCILobIsEqual(envhp, first, second, byref(flag))
        return ret, bool(flag.value)

    def lob_file_exists(self, svchp, errhp, locator) -> Tuple[int, bool]:
        flag = boolean()
        ret = self.OCILobFileExists(svchp, errhp, locator, byref(flag))
        return ret, bool(flag.value)

    def lob_file_get_name(self, envhp, errhp, locator) -> Tuple[int, str, str]:
        directory = create_string_buffer(128)
        directory_length = ub2(128)
        name = create_string_buffer(255)
        name_length = ub2(255)
        ret = self.OCILobFileGetName(
            envhp, errhp, locator, directory, byref(directory_length), name, byref(name_length)
        )
        return (
            ret,
            directory.raw[: directory_length.value].decode("utf-8"),
            name.raw[: name_length.value].decode("utf-8"),
        )

    def lob_file_set_name(self, envhp, errhp, locator: c_void_p, directory: bytes, name: bytes) -> int:
        """locator is updated in place; OCI may reallocate it."""
        return self.OCILobFileSetName(
            envhp, errhp, byref(locator), directory, len(directory), name, len(name)
        )

    def lob_file_open(self, svchp, errhp, locator) -> int:
        return self.OCILobFileOpen(svchp, errhp, locator, ConstantsOCI.OCI_FILE_READONLY.value)

    def lob_file_close(self, svchp, errhp, locator) -> int:
        return self.OCILobFileClose(svchp, errhp, locator)


_libraries: Dict[str, OCILibrary] = {}
_libraries_lock = threading.Lock()


def load_library(filename: Optional[str] = None) -> OCILibrary:
    """
    Return the OCILibrary for `filename`, loading it on first use.
    One OCILibrary instance exists per path for the life of the process.
    """
    key = filename or ""
    with _libraries_lock:
        library = _libraries.get(key)
        if library is None:
            library = OCILibrary(filename)
            _libraries[key] = library
        return library
