"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the exception hierarchy of the oracle_python package and the
classification of native ORA- error codes.

The PEP-249 hierarchy (Warning, Error, InterfaceError, DatabaseError, ...) is extended
with one class per failing operation (InitError, ConnectError, ...). Every error carries
the native code and message, plus an ErrorKind naming well-known codes.
"""

import builtins
from enum import Enum
from typing import Dict, Optional, Tuple, Type


class ErrorKind(Enum):
    """Named classification of an error, independent of the operation that raised it."""

    UNCLASSIFIED = "unclassified"
    OBJECT_NOT_FOUND = "object does not exist"
    OBJECT_EXISTS = "object already exists"
    USER_NOT_FOUND = "user does not exist"
    USER_EXISTS = "user already exists"
    INVALID_CREDENTIALS = "invalid credentials"
    ACCOUNT_LOCKED = "account locked"
    PASSWORD_EXPIRED = "password expired"
    INSUFFICIENT_PRIVILEGES = "insufficient privileges"
    UNIQUE_VIOLATION = "unique constraint violated"
    INTEGRITY_VIOLATION = "integrity constraint violated"
    NULL_VIOLATION = "cannot insert NULL"
    VALUE_TOO_LARGE = "value too large for column"
    NUMERIC_OVERFLOW = "numeric overflow"
    INVALID_NUMBER = "invalid number"
    DIVISION_BY_ZERO = "division by zero"
    SYNTAX_ERROR = "syntax error"
    INVALID_IDENTIFIER = "invalid identifier"
    BIND_MISMATCH = "bind variable mismatch"
    DEADLOCK = "deadlock detected"
    CANCELLED = "user requested cancel"
    FETCH_OUT_OF_SEQUENCE = "fetch out of sequence"
    VALUE_TRUNCATED = "value truncated"
    BFILE_NOT_FOUND = "external file not found"
    CONNECTION_LOST = "connection lost"
    SERVER_UNAVAILABLE = "server unavailable"
    LIBRARY_NOT_LOADED = "client library not loaded"
    INVALID_HANDLE = "invalid handle"
    HANDLE_CLOSED = "handle closed"
    STATEMENT_CLOSED = "statement closed"
    TYPE_MISMATCH = "type mismatch"
    OUT_OF_RANGE = "value out of range"


class Exception(builtins.Exception):
    """
    Base class for all exceptions of this module.
    It can be used to catch any exception raised by the database operations.

    Attributes:
        driver_error: Description produced by the driver.
        oci_error: Native message as returned by OCIErrorGet (may be empty).
        code: Native ORA- code, 0 when the error did not come from the server.
        kind: ErrorKind classification of the code.
    """

    def __init__(
        self,
        driver_error: str,
        oci_error: str = "",
        code: int = 0,
        kind: Optional[ErrorKind] = None,
    ) -> None:
        self.driver_error = driver_error
        self.oci_error = oci_error.rstrip() if oci_error else ""
        self.code = code
        self.kind = kind if kind is not None else classify_error(code)[0]
        if self.oci_error:
            self.message = f"Driver Error: {driver_error}; OCI Error: {self.oci_error}"
        else:
            self.message = f"Driver Error: {driver_error}"
        super().__init__(self.message)

    @property
    def is_fatal(self) -> bool:
        """True when the error means the session can no longer be used."""
        return self.kind is ErrorKind.CONNECTION_LOST


class Warning(Exception):
    """
    Raised for important warnings such as data truncations while inserting.
    """


class Error(Exception):
    """
    Base class of all other error exceptions.
    """


class InterfaceError(Error):
    """
    Raised for errors related to the database interface rather than the database
    itself, such as use of a closed handle.
    """


class DatabaseError(Error):
    """
    Raised for errors related to the database.
    """


class DataError(DatabaseError):
    """
    Raised for errors due to problems with the processed data, like numeric
    values out of range.
    """


class OperationalError(DatabaseError):
    """
    Raised for errors related to the database's operation, not necessarily
    under the control of the programmer (lost connection, failed logon, ...).
    """


class IntegrityError(DatabaseError):
    """
    Raised when the relational integrity of the database is affected.
    """


class InternalError(DatabaseError):
    """
    Raised when the database or the client library encounters an internal error.
    """


class ProgrammingError(DatabaseError):
    """
    Raised for programming errors: syntax errors, wrong number of parameters,
    incompatible bind values.
    """


class NotSupportedError(DatabaseError):
    """
    Raised when a method or database API is not supported.
    """


# Operation-level errors


class InitError(OperationalError):
    """The native client library could not be loaded or initialized."""


class ConnectError(OperationalError):
    """Attach or logon failed (authentication failure, unreachable server, ...)."""


class QueryError(DatabaseError):
    """A session metadata query (server version, time offset) failed."""


class PrepareError(ProgrammingError):
    """The SQL text could not be prepared into a statement handle."""


class BindError(ProgrammingError):
    """A value is not compatible with the parameter's type or direction."""


class ExecuteError(DatabaseError):
    """Server-side execution failed, constraint violations included."""


class FetchError(DatabaseError):
    """Row retrieval failed (cursor or network failure, truncated value)."""


class ConversionError(DataError):
    """A value is outside the representable range of its native type."""


class TxnError(OperationalError):
    """Commit or rollback failed."""


# ORA- code -> (kind, driver description)
oracle_code_to_kind: Dict[int, Tuple[ErrorKind, str]] = {
    1: (ErrorKind.UNIQUE_VIOLATION, "Unique constraint violated"),
    28: (ErrorKind.CONNECTION_LOST, "Session has been killed"),
    54: (ErrorKind.DEADLOCK, "Resource busy"),
    60: (ErrorKind.DEADLOCK, "Deadlock detected while waiting for resource"),
    900: (ErrorKind.SYNTAX_ERROR, "Invalid SQL statement"),
    904: (ErrorKind.INVALID_IDENTIFIER, "Invalid identifier"),
    907: (ErrorKind.SYNTAX_ERROR, "Missing right parenthesis"),
    911: (ErrorKind.SYNTAX_ERROR, "Invalid character"),
    923: (ErrorKind.SYNTAX_ERROR, "FROM keyword not found where expected"),
    933: (ErrorKind.SYNTAX_ERROR, "SQL command not properly ended"),
    936: (ErrorKind.SYNTAX_ERROR, "Missing expression"),
    942: (ErrorKind.OBJECT_NOT_FOUND, "Table or view does not exist"),
    955: (ErrorKind.OBJECT_EXISTS, "Name is already used by an existing object"),
    1002: (ErrorKind.FETCH_OUT_OF_SEQUENCE, "Fetch out of sequence"),
    1006: (ErrorKind.BIND_MISMATCH, "Bind variable does not exist"),
    1008: (ErrorKind.BIND_MISMATCH, "Not all variables bound"),
    1012: (ErrorKind.CONNECTION_LOST, "Not logged on"),
    1013: (ErrorKind.CANCELLED, "User requested cancel of current operation"),
    1017: (ErrorKind.INVALID_CREDENTIALS, "Invalid username/password; logon denied"),
    1031: (ErrorKind.INSUFFICIENT_PRIVILEGES, "Insufficient privileges"),
    1033: (ErrorKind.SERVER_UNAVAILABLE, "Oracle initialization or shutdown in progress"),
    1034: (ErrorKind.SERVER_UNAVAILABLE, "Oracle not available"),
    1036: (ErrorKind.BIND_MISMATCH, "Illegal variable name/number"),
    1089: (ErrorKind.CONNECTION_LOST, "Immediate shutdown in progress"),
    1092: (ErrorKind.CONNECTION_LOST, "Oracle instance terminated"),
    1400: (ErrorKind.NULL_VIOLATION, "Cannot insert NULL"),
    1406: (ErrorKind.VALUE_TRUNCATED, "Fetched column value was truncated"),
    1438: (ErrorKind.NUMERIC_OVERFLOW, "Value larger than specified precision"),
    1476: (ErrorKind.DIVISION_BY_ZERO, "Divisor is equal to zero"),
    1722: (ErrorKind.INVALID_NUMBER, "Invalid number"),
    1918: (ErrorKind.USER_NOT_FOUND, "User does not exist"),
    1920: (ErrorKind.USER_EXISTS, "User name conflicts with another user or role name"),
    2291: (ErrorKind.INTEGRITY_VIOLATION, "Parent key not found"),
    2292: (ErrorKind.INTEGRITY_VIOLATION, "Child record found"),
    2396: (ErrorKind.CONNECTION_LOST, "Exceeded maximum idle time"),
    3113: (ErrorKind.CONNECTION_LOST, "End-of-file on communication channel"),
    3114: (ErrorKind.CONNECTION_LOST, "Not connected to Oracle"),
    3135: (ErrorKind.CONNECTION_LOST, "Connection lost contact"),
    12153: (ErrorKind.CONNECTION_LOST, "TNS: not connected"),
    12154: (ErrorKind.SERVER_UNAVAILABLE, "TNS: could not resolve the connect identifier"),
    12514: (ErrorKind.SERVER_UNAVAILABLE, "TNS: listener does not currently know of service"),
    12528: (ErrorKind.SERVER_UNAVAILABLE, "TNS: listener: all appropriate instances are blocking new connections"),
    12537: (ErrorKind.CONNECTION_LOST, "TNS: connection closed"),
    12541: (ErrorKind.SERVER_UNAVAILABLE, "TNS: no listener"),
    12547: (ErrorKind.CONNECTION_LOST, "TNS: lost contact"),
    12570: (ErrorKind.CONNECTION_LOST, "TNS: packet reader failure"),
    12583: (ErrorKind.CONNECTION_LOST, "TNS: no reader"),
    12899: (ErrorKind.VALUE_TOO_LARGE, "Value too large for column"),
    22288: (ErrorKind.BFILE_NOT_FOUND, "File or LOB operation failed"),
    27146: (ErrorKind.CONNECTION_LOST, "Post/wait initialization failed"),
    28000: (ErrorKind.ACCOUNT_LOCKED, "The account is locked"),
    28001: (ErrorKind.PASSWORD_EXPIRED, "The password has expired"),
    28511: (ErrorKind.CONNECTION_LOST, "Lost RPC connection to heterogeneous remote agent"),
}

# Default PEP-249 class per kind, used when the call site does not impose one
kind_to_exception: Dict[ErrorKind, Type[Error]] = {
    ErrorKind.OBJECT_NOT_FOUND: ProgrammingError,
    ErrorKind.OBJECT_EXISTS: ProgrammingError,
    ErrorKind.USER_NOT_FOUND: ProgrammingError,
    ErrorKind.USER_EXISTS: ProgrammingError,
    ErrorKind.INVALID_CREDENTIALS: OperationalError,
    ErrorKind.ACCOUNT_LOCKED: OperationalError,
    ErrorKind.PASSWORD_EXPIRED: OperationalError,
    ErrorKind.INSUFFICIENT_PRIVILEGES: ProgrammingError,
    ErrorKind.UNIQUE_VIOLATION: IntegrityError,
    ErrorKind.INTEGRITY_VIOLATION: IntegrityError,
    ErrorKind.NULL_VIOLATION: IntegrityError,
    ErrorKind.VALUE_TOO_LARGE: DataError,
    ErrorKind.NUMERIC_OVERFLOW: DataError,
    ErrorKind.INVALID_NUMBER: DataError,
    ErrorKind.DIVISION_BY_ZERO: DataError,
    ErrorKind.SYNTAX_ERROR: ProgrammingError,
    ErrorKind.INVALID_IDENTIFIER: ProgrammingError,
    ErrorKind.BIND_MISMATCH: ProgrammingError,
    ErrorKind.DEADLOCK: OperationalError,
    ErrorKind.CANCELLED: OperationalError,
    ErrorKind.FETCH_OUT_OF_SEQUENCE: InterfaceError,
    ErrorKind.VALUE_TRUNCATED: DataError,
    ErrorKind.BFILE_NOT_FOUND: OperationalError,
    ErrorKind.CONNECTION_LOST: OperationalError,
    ErrorKind.SERVER_UNAVAILABLE: OperationalError,
}


def classify_error(code: int) -> Tuple[ErrorKind, str]:
    """
    Classify a native ORA- code.

    Args:
        code (int): The native error code (e.g. 942 for ORA-00942).

    Returns:
        tuple: (ErrorKind, driver description). Unknown codes give
        (ErrorKind.UNCLASSIFIED, "Database error ORA-NNNNN").
    """
    if code in oracle_code_to_kind:
        return oracle_code_to_kind[code]
    return ErrorKind.UNCLASSIFIED, f"Database error ORA-{code:05d}"


def truncate_error_message(error_message: str, max_length: int = 512) -> str:
    """
    Normalize a native error message: drop trailing whitespace and newlines,
    and cut messages longer than max_length.

    Args:
        error_message (str): Message as returned by OCIErrorGet.
        max_length (int): Maximum number of characters kept.

    Returns:
        str: The normalized message.
    """
    message = error_message.rstrip()
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def raise_exception(
    code: int, oci_error: str, error_class: Optional[Type[Error]] = None
) -> None:
    """
    Raise the exception matching a native error code.

    The class raised is error_class when given (the operation that failed),
    otherwise the default class of the code's kind, otherwise DatabaseError.

    Args:
        code (int): Native ORA- code.
        oci_error (str): Native message.
        error_class: Optional operation-level class (ConnectError, ExecuteError, ...).

    Raises:
        Error: Always.
    """
    kind, description = classify_error(code)
    if error_class is None:
        error_class = kind_to_exception.get(kind, DatabaseError)
    raise error_class(driver_error=description, oci_error=oci_error, code=code, kind=kind)
