"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module defines the Connection class, a logged-on session of an Environment.
The class provides methods to prepare statements, commit and roll back transactions,
read session metadata, and close the session.

Resource Management:
- A Connection owns its error, server, service context and session handles.
- Statements and LOBs created from this connection are tracked in a WeakSet; each of
  them keeps the connection (and so the environment) alive.
- When close() is called, all live statements and LOBs are closed first, then the session
  is ended and the server detached, even if an earlier step failed.
- After a connection-loss error the connection is invalidated: every later call on it or
  on its statements, result sets and LOBs fails at once with InterfaceError.
"""

import datetime
import weakref
from typing import Any

from oracle_python.charset import Charset
from oracle_python.constants import (
    OCI_ATTR_SERVER,
    OCI_ATTR_SESSION,
    Attribute,
    ConnectionState,
    ConstantsOCI,
    CredentialType,
    DescriptorType,
    HandleType,
)
from oracle_python.diagnostics import check_error
from oracle_python.exceptions import (
    ConnectError,
    Error,
    ErrorKind,
    InterfaceError,
    ProgrammingError,
    QueryError,
    TxnError,
)
from oracle_python.helpers import log
from oracle_python.logging import logger
from oracle_python.params import ConnectParams, ExternalCredentials, ProxyCredentials, RdbmsCredentials
from oracle_python.values import OracleType
from oracle_python.version import Version


class Connection:
    """
    A session with an Oracle server.

    Connections are created by Environment.connect() (or oracle_python.connect()).
    """

    def __init__(self, environment) -> None:
        self._environment = environment
        self._library = environment._library
        self._envhp = environment._envhp
        self._errhp = None
        self._srvhp = None
        self._svchp = None
        self._usrhp = None
        self._state = ConnectionState.DISCONNECTED
        self._closed = False
        self._invalidated = False
        self._autocommit = False
        self._children = weakref.WeakSet()
        self._trace_id = logger.generate_trace_id("CONN")

    @classmethod
    def _connect(cls, environment, params: ConnectParams) -> "Connection":
        """Attach and log on; on any failure release every handle and raise ConnectError."""
        connection = cls(environment)
        logger.set_trace_id(connection._trace_id)
        try:
            connection._attach(params)
            connection._logon(params)
        except Error as e:
            connection._teardown()
            if isinstance(e, ConnectError):
                raise
            raise ConnectError(
                driver_error=e.driver_error, oci_error=e.oci_error, code=e.code, kind=e.kind
            ) from e
        log('info', "Connected to %r as %s", params.server_locator, connection._trace_id)
        return connection

    def _alloc(self, handle_type: HandleType):
        ret, handle = self._library.handle_alloc(self._envhp, handle_type)
        check_error(
            self._library, self._envhp, ret, ConnectError,
            f"Allocating {handle_type.name} handle", handle_type=HandleType.ENV,
        )
        return handle

    def _attach(self, params: ConnectParams) -> None:
        lib = self._library
        self._errhp = self._alloc(HandleType.ERROR)
        self._srvhp = self._alloc(HandleType.SERVER)
        self._svchp = self._alloc(HandleType.SVCCTX)

        locator = params.server_locator.encode(self._environment.charset.codec)
        ret = lib.server_attach(self._srvhp, self._errhp, locator, params.attach_mode.oci_mode)
        check_error(lib, self._errhp, ret, ConnectError, "Attaching to server")
        self._state = ConnectionState.ATTACHED

        ret = lib.attr_set_handle(self._svchp, HandleType.SVCCTX, self._srvhp, OCI_ATTR_SERVER, self._errhp)
        check_error(lib, self._errhp, ret, ConnectError, "Setting server handle")

    def _logon(self, params: ConnectParams) -> None:
        lib = self._library
        codec = self._environment.charset.codec
        self._usrhp = self._alloc(HandleType.SESSION)

        credentials = params.credentials
        if isinstance(credentials, RdbmsCredentials):
            username, password = credentials.username, credentials.password
        elif isinstance(credentials, ProxyCredentials):
            username, password = credentials.logon_name, credentials.proxy_password
        else:
            username = password = None

        if isinstance(credentials, ExternalCredentials):
            credential_type = CredentialType.EXT
        else:
            credential_type = CredentialType.RDBMS
            for value, attribute in ((username, Attribute.USERNAME), (password, Attribute.PASSWORD)):
                ret = lib.attr_set_text(self._usrhp, HandleType.SESSION, value.encode(codec), attribute, self._errhp)
                check_error(lib, self._errhp, ret, ConnectError, "Setting credentials")

        ret = lib.session_begin(self._svchp, self._errhp, self._usrhp, credential_type, int(params.auth_mode))
        check_error(lib, self._errhp, ret, ConnectError, "Logging on")
        self._state = ConnectionState.LOGGED_ON

        ret = lib.attr_set_handle(self._svchp, HandleType.SVCCTX, self._usrhp, OCI_ATTR_SESSION, self._errhp)
        check_error(lib, self._errhp, ret, ConnectError, "Setting session handle")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def invalidated(self) -> bool:
        """True after a connection-loss error."""
        return self._invalidated

    @property
    def environment(self):
        return self._environment

    @property
    def _descriptors_live(self) -> bool:
        """False once the environment, and every descriptor allocated from it, is gone."""
        return not self._environment._closed

    def _charset(self, charset_form: int) -> Charset:
        if charset_form == ConstantsOCI.SQLCS_NCHAR.value:
            return self._environment.ncharset
        return self._environment.charset

    def _register_child(self, child) -> None:
        self._children.add(child)

    def _invalidate(self, code: int) -> None:
        if not self._invalidated:
            self._invalidated = True
            log('error', "Connection %s invalidated by ORA-%05d", self._trace_id, code)

    def _check_usable(self) -> None:
        if self._closed:
            raise InterfaceError(driver_error="Connection is closed", kind=ErrorKind.HANDLE_CLOSED)
        if self._invalidated:
            raise InterfaceError(
                driver_error="Connection was lost; it must be closed and reopened",
                kind=ErrorKind.CONNECTION_LOST,
            )

    def _check(self, ret: int, error_class, context: str) -> int:
        return check_error(self._library, self._errhp, ret, error_class, context, connection=self)

    @property
    def autocommit(self) -> bool:
        """Whether DML statements are committed as part of their execution."""
        return self._autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        self._autocommit = bool(value)
        log('info', "Autocommit mode set to %s.", self._autocommit)

    def server_version(self) -> str:
        """
        Release banner of the server, e.g. "Oracle Database 19c Enterprise Edition ...".

        Raises:
            QueryError: The banner could not be read.
        """
        self._check_usable()
        ret, banner, _ = self._library.server_release(self._svchp, self._errhp, HandleType.SVCCTX)
        self._check(ret, QueryError, "Reading server version")
        return banner

    def server_version_info(self) -> Version:
        """Server release as a Version."""
        self._check_usable()
        ret, _, number = self._library.server_release(self._svchp, self._errhp, HandleType.SVCCTX)
        self._check(ret, QueryError, "Reading server version")
        return Version.from_release_number(number)

    def current_time_offset(self) -> datetime.timedelta:
        """
        UTC offset of the session time zone.

        Raises:
            QueryError: The offset could not be read.
        """
        self._check_usable()
        lib = self._library
        ret, descriptor = lib.descriptor_alloc(self._envhp, DescriptorType.TIMESTAMP_TZ)
        check_error(lib, self._envhp, ret, QueryError, "Allocating timestamp", handle_type=HandleType.ENV)
        try:
            ret = lib.datetime_sys_timestamp(self._usrhp, self._errhp, descriptor)
            self._check(ret, QueryError, "Reading session timestamp")
            ret, hours, minutes = lib.datetime_get_tz_offset(self._usrhp, self._errhp, descriptor)
            self._check(ret, QueryError, "Reading session time zone offset")
        finally:
            lib.descriptor_free(descriptor, DescriptorType.TIMESTAMP_TZ)
        return datetime.timedelta(hours=hours, minutes=minutes)

    def prepare(self, sql: str):
        """
        Prepare SQL text into a Statement.

        Raises:
            PrepareError: The statement handle could not be created.
            InterfaceError: The connection is closed or lost.
        """
        from oracle_python.statement import Statement

        self._check_usable()
        return Statement(self, sql)

    def execute(self, sql: str, params: Any = None):
        """
        Prepare and execute a statement in one call and return the Statement.

        This is a convenience method. Close the returned statement (or use it in a
        with block) when it is no longer needed.

        Example:
            with conn.execute("select * from dual") as stmt:
                row = stmt.result_set().fetchone()
        """
        statement = self.prepare(sql)
        try:
            statement.execute(params)
        except Exception:
            statement.close()
            raise
        return statement

    def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            TxnError: The commit failed.
        """
        self._check_usable()
        ret = self._library.trans_commit(self._svchp, self._errhp)
        self._check(ret, TxnError, "Commit")
        log('info', "Transaction committed successfully.")

    def rollback(self) -> None:
        """
        Roll back the current transaction.

        Raises:
            TxnError: The rollback failed.
        """
        self._check_usable()
        ret = self._library.trans_rollback(self._svchp, self._errhp)
        self._check(ret, TxnError, "Rollback")
        log('info', "Transaction rolled back successfully.")

    def break_(self) -> None:
        """
        Interrupt the call currently running on this connection. Meant to be called from
        another thread; the interrupted call fails with ORA-01013.
        """
        self._check_usable()
        ret = self._library.break_(self._svchp, self._errhp)
        self._check(ret, Error, "Break")
        log('info', "Break sent on connection %s", self._trace_id)

    def reset(self) -> None:
        """Restore the protocol after an interrupted call."""
        self._check_usable()
        ret = self._library.reset(self._svchp, self._errhp)
        self._check(ret, Error, "Reset")

    def ping(self) -> None:
        """
        Make a round trip to the server.

        Raises:
            OperationalError: The session is no longer usable (the connection is invalidated).
        """
        self._check_usable()
        ret = self._library.ping(self._svchp, self._errhp)
        self._check(ret, None, "Ping")

    def create_temporary_lob(self, lob_type: OracleType):
        """
        Create an empty temporary CLOB, NCLOB or BLOB, e.g. to bind large data.

        Returns:
            oracle_python.lob.Lob: The temporary LOB, freed by Lob.free() or when the
            connection closes.
        """
        from oracle_python.lob import Lob

        if lob_type not in (OracleType.CLOB, OracleType.NCLOB, OracleType.BLOB):
            raise ProgrammingError(
                driver_error=f"Temporary LOBs cannot be of type {lob_type.value}",
                kind=ErrorKind.TYPE_MISMATCH,
            )
        self._check_usable()
        lib = self._library
        ret, locator = lib.descriptor_alloc(self._envhp, DescriptorType.LOB)
        check_error(lib, self._envhp, ret, Error, "Allocating LOB locator", handle_type=HandleType.ENV)
        if lob_type is OracleType.BLOB:
            temp_type = ConstantsOCI.OCI_TEMP_BLOB.value
        else:
            temp_type = ConstantsOCI.OCI_TEMP_CLOB.value
        charset_form = (
            ConstantsOCI.SQLCS_NCHAR.value if lob_type is OracleType.NCLOB else ConstantsOCI.SQLCS_IMPLICIT.value
        )
        ret = lib.lob_create_temporary(self._svchp, self._errhp, locator, charset_form, temp_type)
        try:
            self._check(ret, Error, "Creating temporary LOB")
        except Error:
            lib.descriptor_free(locator, DescriptorType.LOB)
            raise
        return Lob(self, locator, lob_type, DescriptorType.LOB)

    def _teardown(self) -> list:
        """
        End the session, detach and free all handles. Each step runs even if an earlier
        one failed; the errors are returned.
        """
        lib = self._library
        errors = []
        if not self._descriptors_live:
            # Freed along with the environment handle
            self._usrhp = self._svchp = self._srvhp = self._errhp = None
            self._state = ConnectionState.DISCONNECTED
            return errors

        def attempt(context, call):
            try:
                call()
            except Error as e:
                errors.append(e)
                log('warning', "%s failed during close: %s", context, e)

        if self._state is ConnectionState.LOGGED_ON:
            if not self._invalidated and not self._autocommit:
                attempt("Rollback", lambda: self._check(
                    lib.trans_rollback(self._svchp, self._errhp), TxnError, "Rollback"))
            attempt("Logoff", lambda: self._check(
                lib.session_end(self._svchp, self._errhp, self._usrhp), Error, "Logging off"))
            self._state = ConnectionState.ATTACHED
        if self._state is ConnectionState.ATTACHED:
            attempt("Detach", lambda: self._check(
                lib.server_detach(self._srvhp, self._errhp), Error, "Detaching from server"))
            self._state = ConnectionState.DISCONNECTED

        for attr, handle_type in (
            ("_usrhp", HandleType.SESSION),
            ("_svchp", HandleType.SVCCTX),
            ("_srvhp", HandleType.SERVER),
            ("_errhp", HandleType.ERROR),
        ):
            handle = getattr(self, attr)
            if handle is not None:
                lib.handle_free(handle, handle_type)
                setattr(self, attr, None)
        return errors

    def close(self) -> None:
        """
        Close the connection now (rather than whenever .__del__() is called).

        Live statements and LOBs are closed first, then the session is ended (rolling back
        uncommitted work) and the server detached. After this the connection, its
        statements and LOBs can no longer be used.

        Raises:
            Error: The first error met while ending a healthy session, after all cleanup
                steps have run. Errors of a lost connection are only logged.
        """
        if self._closed:
            return

        close_errors = []
        for child in list(self._children):
            try:
                child._release()
            except Error as e:
                close_errors.append(e)
                log('warning', "Error closing %s: %s", type(child).__name__, e)
        self._children.clear()

        close_errors.extend(self._teardown())
        self._closed = True
        self._state = ConnectionState.CLOSED
        self._environment._connections.discard(self)

        if close_errors:
            log('warning', "Encountered %d errors while closing connection %s", len(close_errors), self._trace_id)
            if not self._invalidated:
                raise close_errors[0]
        log('info', "Connection %s closed successfully.", self._trace_id)

    def _release(self) -> None:
        self.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self):
        """
        Destructor to ensure the connection is closed when the connection object is no longer needed.
        This is a safety net to ensure resources are cleaned up
        even if close() was not called explicitly.
        """
        if "_closed" in self.__dict__ and not self._closed:
            try:
                self.close()
            except Exception as e:
                log('error', "Error during connection cleanup in __del__: %s", e)
