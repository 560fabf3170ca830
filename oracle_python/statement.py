"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Statement class, a prepared SQL statement of a Connection.

Resource Management:
- Statements are tracked by their parent connection.
- Closing the connection will automatically close all open statements.
- Do not use a statement after it is closed, or after its parent connection is closed.
- Use close() to release the statement handle and bind buffers as soon as they are
  no longer needed.
"""

from typing import Any, Dict, List, Optional, Union

from oracle_python.constants import (
    Attribute,
    ConstantsOCI,
    DescriptorType,
    Direction,
    HandleType,
    ReturnCode,
    StatementType,
)
from oracle_python.diagnostics import check_error
from oracle_python.exceptions import (
    BindError,
    Error,
    ErrorKind,
    ExecuteError,
    InterfaceError,
    PrepareError,
    ProgrammingError,
)
from oracle_python.helpers import get_settings, log
from oracle_python.logging import logger
from oracle_python.typesystem import (
    SQLCS_NCHAR,
    BindBuffer,
    BindSpec,
    ColumnDescriptor,
    check_bind,
    describe_type,
)
from oracle_python.values import OracleType, Value, to_value

_DML_TYPES = (StatementType.UPDATE, StatementType.DELETE, StatementType.INSERT, StatementType.MERGE)

Parameter = Union[str, int]


def _bind_key(parameter: Parameter) -> Parameter:
    """Normalize ':name' / 'name' to 'NAME'; positions stay 1-based ints."""
    if isinstance(parameter, bool) or not isinstance(parameter, (str, int)):
        raise ProgrammingError(
            driver_error=f"Bind parameter must be a name or a position, not {type(parameter).__name__}",
            kind=ErrorKind.BIND_MISMATCH,
        )
    if isinstance(parameter, int):
        if parameter < 1:
            raise ProgrammingError(driver_error="Bind positions start at 1", kind=ErrorKind.BIND_MISMATCH)
        return parameter
    name = parameter[1:] if parameter.startswith(":") else parameter
    if not name:
        raise ProgrammingError(driver_error="Empty bind name", kind=ErrorKind.BIND_MISMATCH)
    # Quoted names keep their case.
    return name if name.startswith('"') else name.upper()


class Statement:
    """
    A prepared statement.

    Attributes:
        arraysize: Rows fetched per round trip by result sets created afterwards.

    Methods:
        bind(parameter, value, declared=None, direction=Direction.IN) -> None.
        execute(params=None) -> list of ColumnDescriptor (queries) or int (DML row count).
        result_set() -> ResultSet of the last query.
        out_value(parameter) -> Value of an OUT / IN OUT parameter.
        close() -> None.
    """

    def __init__(self, connection, sql: str) -> None:
        self._connection = connection
        self._library = connection._library
        self._stmthp = None
        self._closed = False
        self.sql = sql
        self._binds: Dict[Parameter, BindBuffer] = {}
        self._columns: Optional[List[ColumnDescriptor]] = None
        self._result_set = None
        self._rowcount = -1
        self.arraysize = get_settings().arraysize
        self._trace_id = logger.generate_trace_id("STMT")

        lib = self._library
        ret, stmthp = lib.stmt_prepare(
            connection._svchp, connection._errhp, sql.encode(connection.environment.charset.codec)
        )
        self._check(ret, PrepareError, "Preparing statement")
        self._stmthp = stmthp
        connection._register_child(self)

        ret, stmt_type = lib.attr_get(stmthp, HandleType.STMT, Attribute.STMT_TYPE, connection._errhp, kind="ub2")
        self._check(ret, PrepareError, "Reading statement type")
        try:
            self._statement_type = StatementType(stmt_type)
        except ValueError:
            self._statement_type = StatementType.UNKNOWN

        ret = lib.attr_set_int(
            stmthp, HandleType.STMT, get_settings().prefetch_rows, Attribute.PREFETCH_ROWS, connection._errhp
        )
        self._check(ret, PrepareError, "Setting prefetch rows")
        log('debug', "Prepared %s statement %s: %s", self._statement_type.name, self._trace_id, sql)

    def _check(self, ret: int, error_class, context: str) -> int:
        conn = self._connection
        return check_error(self._library, conn._errhp, ret, error_class, context, connection=conn)

    def _check_open(self) -> None:
        """
        Raise InterfaceError if the statement (or its connection) can no longer be used.
        """
        if self._closed:
            raise InterfaceError(driver_error="Statement is closed", kind=ErrorKind.STATEMENT_CLOSED)
        self._connection._check_usable()

    @property
    def connection(self):
        return self._connection

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def statement_type(self) -> StatementType:
        return self._statement_type

    @property
    def is_query(self) -> bool:
        return self._statement_type is StatementType.SELECT

    @property
    def rowcount(self) -> int:
        """Rows affected by the last DML execution, or rows fetched so far for a query; -1 before execute."""
        if self._result_set is not None:
            return self._result_set.rowcount
        return self._rowcount

    @property
    def columns(self) -> Optional[List[ColumnDescriptor]]:
        """Column descriptors of the last executed query, None otherwise."""
        return self._columns

    @property
    def description(self) -> Optional[List[tuple]]:
        """DB-API description of the last executed query."""
        if self._columns is None:
            return None
        lowercase = get_settings().lowercase
        description = []
        for column in self._columns:
            item = column.description()
            if lowercase:
                item = (item[0].lower(),) + item[1:]
            description.append(item)
        return description

    def bind(
        self,
        parameter: Parameter,
        value: Any,
        declared: Optional[Union[BindSpec, OracleType]] = None,
        direction: Direction = Direction.IN,
    ) -> None:
        """
        Bind a value to a placeholder.

        Args:
            parameter: Placeholder name (with or without the leading ':') or 1-based position.
            value: A Value or a plain Python value, converted with values.to_value().
            declared: Declared type of the parameter; required for OUT and IN OUT.
            direction: Direction.IN, OUT or IN_OUT.

        Raises:
            BindError: The value does not fit the declared (or inferred) type or direction.
                Previously bound parameters are left untouched.
        """
        self._check_open()
        key = _bind_key(parameter)
        if isinstance(declared, OracleType):
            declared = BindSpec(declared)
        value = value if isinstance(value, Value) else to_value(value)
        spec = check_bind(value, declared, direction)
        buffer = BindBuffer(self._connection, value, spec, direction)
        try:
            self._bind_buffer(key, buffer)
        except Error:
            buffer.free()
            raise

        previous = self._binds.get(key)
        self._binds[key] = buffer
        if previous is not None:
            previous.free()
        log('debug', "Bound %r as %s (%s)", key, spec.type.name, direction.name)

    def _bind_buffer(self, key: Parameter, buffer: BindBuffer) -> None:
        conn = self._connection
        lib = self._library
        if isinstance(key, int):
            ret, bind_handle = lib.bind_by_pos(
                self._stmthp, conn._errhp, key, buffer.data, buffer.value_size, buffer.sqlt,
                buffer.indicator, buffer.length, buffer.rcode,
            )
        else:
            name = f":{key}".encode(conn.environment.charset.codec)
            ret, bind_handle = lib.bind_by_name(
                self._stmthp, conn._errhp, name, buffer.data, buffer.value_size, buffer.sqlt,
                buffer.indicator, buffer.length, buffer.rcode,
            )
        self._check(ret, BindError, f"Binding parameter {key}")
        buffer.bind_handle = bind_handle
        if buffer.charset_form == SQLCS_NCHAR:
            ret = lib.attr_set_int(
                bind_handle, HandleType.BIND, SQLCS_NCHAR, Attribute.CHARSET_FORM, conn._errhp, kind="ub1"
            )
            self._check(ret, BindError, "Setting charset form")

    def _parse_error_offset(self) -> int:
        ret, offset = self._library.attr_get(
            self._stmthp, HandleType.STMT, Attribute.PARSE_ERROR_OFFSET, self._connection._errhp, kind="ub2"
        )
        return offset if ret == ReturnCode.SUCCESS else 0

    def execute(self, params: Any = None) -> Union[List[ColumnDescriptor], int]:
        """
        Execute the statement.

        Args:
            params: Optional dict (bound by name) or sequence (bound by position) of values,
                bound as IN parameters before execution.

        Returns:
            list: Column descriptors, for queries; result_set() then yields the rows.
            int: Affected row count, for other statements.

        Raises:
            ExecuteError: The server rejected the statement. The message includes the
                parse error offset when the server reports one.
        """
        self._check_open()
        if params is not None:
            if isinstance(params, dict):
                for name, value in params.items():
                    self.bind(name, value)
            elif isinstance(params, (list, tuple)):
                for position, value in enumerate(params, 1):
                    self.bind(position, value)
            else:
                raise ProgrammingError(
                    driver_error="Parameters must be a dict or a sequence",
                    kind=ErrorKind.BIND_MISMATCH,
                )

        if self._result_set is not None:
            self._result_set._exhaust()
            self._result_set = None
        self._columns = None
        self._rowcount = -1

        conn = self._connection
        iters = 0 if self.is_query else 1
        mode = ConstantsOCI.OCI_DEFAULT.value
        if conn.autocommit and self._statement_type in _DML_TYPES:
            mode = ConstantsOCI.OCI_COMMIT_ON_SUCCESS.value

        log('debug', "Executing statement %s with %d bound parameters", self._trace_id, len(self._binds))
        ret = self._library.stmt_execute(conn._svchp, self._stmthp, conn._errhp, iters, mode)
        try:
            self._check(ret, ExecuteError, "Executing statement")
        except Error as e:
            offset = 0 if conn.invalidated else self._parse_error_offset()
            if offset:
                raise type(e)(
                    driver_error=f"{e.driver_error} (at offset {offset})",
                    oci_error=e.oci_error,
                    code=e.code,
                    kind=e.kind,
                ) from e
            raise

        if self.is_query:
            from oracle_python.resultset import ResultSet

            self._columns = self._describe()
            self._result_set = ResultSet(self, self._columns)
            return self._columns

        ret, count = self._library.attr_get(self._stmthp, HandleType.STMT, Attribute.ROW_COUNT, conn._errhp)
        self._check(ret, ExecuteError, "Reading row count")
        self._rowcount = count
        log('debug', "Statement %s affected %d rows", self._trace_id, count)
        return count

    def _describe(self) -> List[ColumnDescriptor]:
        conn = self._connection
        lib = self._library
        errhp = conn._errhp
        ret, count = lib.attr_get(self._stmthp, HandleType.STMT, Attribute.PARAM_COUNT, errhp)
        self._check(ret, ExecuteError, "Reading column count")

        columns = []
        for position in range(1, count + 1):
            ret, param = lib.param_get(self._stmthp, errhp, position)
            self._check(ret, ExecuteError, f"Describing column {position}")
            try:
                attrs = {}
                for name, attribute, kind in (
                    ("native_type", Attribute.DATA_TYPE, "ub2"),
                    ("name", Attribute.NAME, "text"),
                    ("data_size", Attribute.DATA_SIZE, "ub2"),
                    ("precision", Attribute.PRECISION, "sb2"),
                    ("scale", Attribute.SCALE, "sb1"),
                    ("nullable", Attribute.IS_NULL, "ub1"),
                    ("charset_form", Attribute.CHARSET_FORM, "ub1"),
                    ("char_size", Attribute.CHAR_SIZE, "ub2"),
                ):
                    ret, attrs[name] = lib.attr_get(param, DescriptorType.PARAM, attribute, errhp, kind=kind)
                    self._check(ret, ExecuteError, f"Describing column {position}")
            finally:
                lib.descriptor_free(param, DescriptorType.PARAM)

            charset = conn._charset(ConstantsOCI.SQLCS_IMPLICIT.value)
            columns.append(ColumnDescriptor(
                name=charset.decode(attrs["name"]),
                type=describe_type(attrs["native_type"], attrs["charset_form"]),
                native_type=attrs["native_type"],
                data_size=attrs["data_size"],
                char_size=attrs["char_size"],
                precision=attrs["precision"],
                scale=attrs["scale"],
                nullable=bool(attrs["nullable"]),
                charset_form=attrs["charset_form"] or ConstantsOCI.SQLCS_IMPLICIT.value,
            ))
        log('debug', "Statement %s returns %d columns", self._trace_id, len(columns))
        return columns

    def result_set(self):
        """
        Rows of the last executed query.

        Raises:
            ProgrammingError: The statement has not been executed as a query.
        """
        self._check_open()
        if self._result_set is None:
            raise ProgrammingError(
                driver_error="No result set: the statement was not executed as a query",
                kind=ErrorKind.FETCH_OUT_OF_SEQUENCE,
            )
        return self._result_set

    def out_value(self, parameter: Parameter) -> Value:
        """
        Value of a bound parameter after execution (the output of OUT / IN OUT binds).

        Raises:
            ProgrammingError: Nothing is bound under that name or position.
        """
        self._check_open()
        key = _bind_key(parameter)
        try:
            buffer = self._binds[key]
        except KeyError:
            raise ProgrammingError(
                driver_error=f"Parameter {parameter!r} is not bound",
                kind=ErrorKind.BIND_MISMATCH,
            ) from None
        return buffer.value()

    def close(self) -> None:
        """
        Close the statement now (rather than whenever __del__ is called).
        The open result set and the bind buffers are released with it. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        if self._result_set is not None:
            self._result_set._exhaust()
            self._result_set = None
        for buffer in self._binds.values():
            buffer.free()
        self._binds.clear()

        conn = self._connection
        if self._stmthp is not None and conn._closed:
            # The handle went with the session; only a collected orphan gets here
            self._stmthp = None
        elif self._stmthp is not None:
            ret = self._library.stmt_release(self._stmthp, conn._errhp)
            self._stmthp = None
            conn._children.discard(self)
            if not conn.invalidated:
                self._check(ret, Error, "Releasing statement")
        log('debug', "Statement %s closed", self._trace_id)

    def _release(self) -> None:
        self.close()

    def __enter__(self) -> "Statement":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else self._statement_type.name
        return f"<oracle_python.Statement {self._trace_id} ({state})>"

    def __del__(self):
        """
        Destructor to ensure the statement is closed when it is no longer needed.
        This is a safety net to ensure resources are cleaned up
        even if close() was not called explicitly.
        """
        if "_closed" in self.__dict__ and not self._closed:
            try:
                self.close()
            except Exception as e:
                log('error', "Error during statement cleanup in __del__: %s", e)
