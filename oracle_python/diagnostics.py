"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module turns OCI status codes into exceptions.

Every fallible OCI call in the package is followed by check_error(), which is the only
place where diagnostic records are read from an error (or environment) handle.
"""

from typing import List, Optional, Tuple, Type

from oracle_python.constants import HandleType, ReturnCode
from oracle_python.exceptions import (
    DatabaseError,
    Error,
    ErrorKind,
    InterfaceError,
    InternalError,
    classify_error,
    kind_to_exception,
    truncate_error_message,
)
from oracle_python.helpers import get_settings, log

_MAX_RECORDS = 8


def get_diagnostic_records(library, handle, handle_type: int = HandleType.ERROR) -> List[Tuple[int, str]]:
    """
    Read all diagnostic records attached to a handle.

    Returns:
        list: (ORA code, message) pairs in record order; empty when none are available.
    """
    records = []
    for record in range(1, _MAX_RECORDS + 1):
        ret, code, message = library.error_get(handle, record, handle_type)
        if ret != ReturnCode.SUCCESS:
            break
        records.append((code, message.rstrip()))
    return records


def check_error(
    library,
    handle,
    ret: int,
    error_class: Optional[Type[Error]] = None,
    context: str = "",
    handle_type: int = HandleType.ERROR,
    connection=None,
) -> int:
    """
    Check the status of an OCI call and raise on failure.

    Args:
        library: The OCILibrary the call was made through.
        handle: Error handle (or environment handle before an error handle exists).
        ret: Status returned by the call.
        error_class: Operation-level exception class (ConnectError, ExecuteError, ...).
        context: Short description of the failed operation, prefixed to the driver message.
        handle_type: HandleType of `handle`.
        connection: Owning connection; invalidated when the error is fatal.

    Returns:
        int: `ret` for SUCCESS, SUCCESS_WITH_INFO, NO_DATA and NEED_DATA, which callers
        handle themselves.

    Raises:
        InterfaceError: For OCI_INVALID_HANDLE.
        Error: error_class (or the default class of the error kind) for OCI_ERROR.
    """
    if ret in (ReturnCode.SUCCESS, ReturnCode.NO_DATA, ReturnCode.NEED_DATA):
        return ret

    if ret == ReturnCode.SUCCESS_WITH_INFO:
        for code, message in get_diagnostic_records(library, handle, handle_type):
            log('warning', "%s: ORA-%05d %s", context or "OCI call", code, message)
        return ret

    if ret == ReturnCode.INVALID_HANDLE:
        raise InterfaceError(
            driver_error=f"{context}: invalid handle" if context else "Invalid handle",
            kind=ErrorKind.INVALID_HANDLE,
        )

    if ret != ReturnCode.ERROR:
        raise InternalError(
            driver_error=f"{context}: unexpected OCI status {ret}" if context else f"Unexpected OCI status {ret}",
        )

    records = get_diagnostic_records(library, handle, handle_type)
    if records:
        code, message = records[0]
    else:
        code, message = 0, ""
    kind, description = classify_error(code)
    if error_class is None:
        error_class = kind_to_exception.get(kind, DatabaseError)
    message = truncate_error_message(message, get_settings().max_error_message_length)
    log('error', "%s failed with ORA-%05d (%s): %s", context or "OCI call", code, kind.value, message)

    if kind is ErrorKind.CONNECTION_LOST and connection is not None:
        connection._invalidate(code)

    raise error_class(
        driver_error=f"{context}: {description}" if context else description,
        oci_error=message,
        code=code,
        kind=kind,
    )
