"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module initializes the oracle_python package.
"""

import atexit
import sys
import threading
import types
from typing import Optional

# Import settings from helpers module
from .helpers import Settings, get_settings, tolerate, _settings, _settings_lock

# Driver version
__version__ = "0.1.0"

# Exceptions
# https://www.python.org/dev/peps/pep-0249/#exceptions
from .exceptions import (
    Warning,
    Error,
    InterfaceError,
    DatabaseError,
    DataError,
    OperationalError,
    IntegrityError,
    InternalError,
    ProgrammingError,
    NotSupportedError,
    InitError,
    ConnectError,
    QueryError,
    PrepareError,
    BindError,
    ExecuteError,
    FetchError,
    ConversionError,
    TxnError,
    ErrorKind,
)

# Type Objects
from .type import (
    Date,
    Time,
    Timestamp,
    DateFromTicks,
    TimeFromTicks,
    TimestampFromTicks,
    Binary,
    STRING,
    BINARY,
    NUMBER,
    DATETIME,
    INTERVAL,
    ROWID,
)

# Tagged values (values.Text, values.Number, ...)
from . import values
from .values import OracleType

# Constants
from .constants import AttachMode, AuthMode, CreateMode, Direction, ConnectionState, StatementType

# Connection parameters
from .params import (
    ConnectParams,
    EnvironmentConfig,
    ExternalCredentials,
    ProxyCredentials,
    RdbmsCredentials,
)

# Handle hierarchy
from .environment import Environment
from .connection import Connection
from .statement import Statement
from .resultset import ResultSet
from .row import Row
from .lob import Lob
from .typesystem import BindSpec, ColumnDescriptor
from .version import Version
from .executor import AsyncConnection, AsyncResultSet, AsyncStatement, NativeCallExecutor

# Logging Configuration
from .logging import logger, setup_logging

from . import environment as _environment_module

_default_environment: Optional[Environment] = None
_default_environment_lock = threading.Lock()


def _get_default_environment() -> Environment:
    global _default_environment
    with _default_environment_lock:
        if _default_environment is None or _default_environment.closed:
            _default_environment = Environment.create()
        return _default_environment


def connect(
    user: Optional[str] = None,
    password: Optional[str] = None,
    dsn: str = "",
    *,
    auth_mode: AuthMode = AuthMode.DEFAULT,
    attach_mode: AttachMode = AttachMode.DEFAULT,
    environment: Optional[Environment] = None,
) -> Connection:
    """
    Connect to an Oracle server.

    Args:
        user: Database user; without user and password, external (OS / wallet)
            authentication is used.
        password: Password of `user`.
        dsn: Server locator (TNS alias, EZConnect string or descriptor). Empty means the
            default local database.
        auth_mode: Privilege flags such as AuthMode.SYSDBA.
        attach_mode: Server attach mode.
        environment: Environment to connect through. By default a shared environment is
            created on first use and closed at interpreter exit.

    Returns:
        Connection: A logged-on connection.

    Raises:
        InitError: The client library could not be loaded.
        ConnectError: Attach or logon failed.
    """
    if user is None and password is None:
        credentials = ExternalCredentials()
    else:
        credentials = RdbmsCredentials(user or "", password or "")
    params = ConnectParams(
        credentials=credentials,
        server_locator=dsn,
        attach_mode=attach_mode,
        auth_mode=auth_mode,
    )
    environment = environment or _get_default_environment()
    return environment.connect(params)


def _cleanup_environments():
    """
    Cleanup function called by atexit to close all live environments.

    This prevents resource leaks during interpreter shutdown by ensuring
    all OCI handles are freed in the correct order before Python finalizes.
    """
    with _environment_module._environments_lock:
        environments_to_close = list(_environment_module._live_environments)

    for env in environments_to_close:
        try:
            if not env.closed:
                # Close will handle connections, statements and LOBs
                env.close()
        except Exception as e:
            try:
                logger.error("Error during environment cleanup at shutdown: %s: %s", type(e).__name__, e)
            except Exception:
                # If logging fails during shutdown, silently ignore
                pass


# Register cleanup function to run before Python exits
atexit.register(_cleanup_environments)

# GLOBALS
# Read-Only
apilevel: str = "2.0"
paramstyle: str = "named"
threadsafety: int = 1


# Module class exposing the lowercase setting as a validated property
class _OracleModule(types.ModuleType):
    @property
    def lowercase(self) -> bool:
        """Get the lowercase setting."""
        return _settings.lowercase

    @lowercase.setter
    def lowercase(self, value: bool) -> None:
        """Set the lowercase setting."""
        if not isinstance(value, bool):
            raise ValueError("lowercase must be a boolean value")
        with _settings_lock:
            _settings.lowercase = value


sys.modules[__name__].__class__ = _OracleModule
