"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module defines the Environment class, the process-wide root of all OCI handles.

Resource Management:
- An Environment owns the OCI environment and its error handle.
- Every Connection keeps its Environment alive; the Environment tracks its connections
  in a WeakSet.
- close() closes all live connections before the environment handles are freed.
"""

import threading
import weakref
from typing import Optional

from oracle_python import charset as charsets
from oracle_python.constants import CreateMode, HandleType, ReturnCode
from oracle_python.diagnostics import check_error
from oracle_python.exceptions import Error, ErrorKind, InitError, InterfaceError
from oracle_python.helpers import log
from oracle_python.logging import logger
from oracle_python.oci_bindings import load_library
from oracle_python.params import ConnectParams, EnvironmentConfig
from oracle_python.version import Version

# Flags that must agree between environments sharing one client library
_MODE_FLAGS = CreateMode.THREADED | CreateMode.OBJECT | CreateMode.EVENTS

_live_environments = weakref.WeakSet()
_environments_lock = threading.Lock()


class Environment:
    """
    An initialized OCI client runtime.

    Use Environment.create() to build one and close() (or a with block) to release it.

    Attributes:
        config: The EnvironmentConfig the environment was created with.
        charset: Client Charset of CHAR/VARCHAR2/CLOB data.
        ncharset: Client Charset of NCHAR/NVARCHAR2/NCLOB data.
    """

    def __init__(self, library, config: EnvironmentConfig) -> None:
        self._library = library
        self.config = config
        self.charset = charsets.lookup(config.charset)
        self.ncharset = charsets.lookup(config.ncharset)
        self._envhp = None
        self._errhp = None
        self._closed = False
        self._connections = weakref.WeakSet()
        self._trace_id = logger.generate_trace_id("ENV")

    @classmethod
    def create(cls, config: Optional[EnvironmentConfig] = None, library=None) -> "Environment":
        """
        Initialize the client runtime.

        Args:
            config: Environment options; defaults to EnvironmentConfig().
            library: An already loaded OCILibrary. By default the client library is
                located through ORACLE_PYTHON_CLIENT_LIB / ORACLE_HOME.

        Returns:
            Environment: The new environment.

        Raises:
            InitError: The library cannot be loaded, the environment cannot be created,
                or a live environment uses the same library with an incompatible mode.
        """
        config = config or EnvironmentConfig()
        library = library if library is not None else load_library()
        env = cls(library, config)

        with _environments_lock:
            for other in _live_environments:
                if other._library is library and not other._closed and (
                    (other.config.mode & _MODE_FLAGS) != (config.mode & _MODE_FLAGS)
                ):
                    raise InitError(
                        driver_error=(
                            f"An environment with mode {other.config.mode!r} is already live; "
                            f"mode {config.mode!r} is incompatible"
                        ),
                        kind=ErrorKind.UNCLASSIFIED,
                    )
            env._open()
            _live_environments.add(env)
        log('info', "Environment %s created (mode=%r, charset=%s, ncharset=%s)",
            env._trace_id, config.mode, env.charset.name, env.ncharset.name)
        return env

    def _open(self) -> None:
        lib = self._library
        ret, envhp = lib.env_create(int(self.config.mode), self.charset.charset_id, self.ncharset.charset_id)
        if ret not in (ReturnCode.SUCCESS, ReturnCode.SUCCESS_WITH_INFO):
            if envhp:
                try:
                    check_error(lib, envhp, ret, InitError, "Creating environment", handle_type=HandleType.ENV)
                finally:
                    lib.handle_free(envhp, HandleType.ENV)
            raise InitError(driver_error=f"Creating environment failed with OCI status {ret}")
        self._envhp = envhp

        ret, errhp = lib.handle_alloc(envhp, HandleType.ERROR)
        if ret != ReturnCode.SUCCESS:
            lib.handle_free(envhp, HandleType.ENV)
            self._envhp = None
            raise InitError(driver_error="Allocating the environment error handle failed")
        self._errhp = errhp

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError(driver_error="Environment is closed", kind=ErrorKind.HANDLE_CLOSED)

    def connect(self, params: ConnectParams):
        """
        Attach to a server and log on.

        Returns:
            Connection: A logged-on connection.

        Raises:
            ConnectError: Attach or logon failed; no connection is returned.
        """
        from oracle_python.connection import Connection

        self._check_open()
        connection = Connection._connect(self, params)
        self._connections.add(connection)
        return connection

    def client_version(self) -> Version:
        """Version of the loaded client library."""
        return Version(*self._library.client_version())

    def close(self) -> None:
        """
        Close all connections of this environment, then free the environment handles.
        Safe to call more than once.
        """
        if self._closed:
            return

        close_errors = []
        for connection in list(self._connections):
            try:
                connection.close()
            except Error as e:
                close_errors.append(e)
                log('warning', "Error closing connection: %s", e)
        self._connections.clear()

        lib = self._library
        if self._errhp is not None:
            lib.handle_free(self._errhp, HandleType.ERROR)
            self._errhp = None
        if self._envhp is not None:
            lib.handle_free(self._envhp, HandleType.ENV)
            self._envhp = None
        self._closed = True
        with _environments_lock:
            _live_environments.discard(self)
        if close_errors:
            log('warning', "Encountered %d errors while closing connections", len(close_errors))
        log('info', "Environment %s closed", self._trace_id)

    def __enter__(self) -> "Environment":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self):
        """
        Safety net for environments that were never closed. Connections keep their
        environment alive, so none of them can be live at this point.
        """
        if "_closed" in self.__dict__ and not self._closed:
            try:
                self.close()
            except Exception as e:
                log('error', "Error during environment cleanup in __del__: %s", e)
