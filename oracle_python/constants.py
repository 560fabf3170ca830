"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the OCI constants used by the oracle_python package.
Values follow oci.h / ocidfn.h of the Oracle client.
"""

from enum import Enum, IntEnum, IntFlag


class ConstantsOCI(Enum):
    """
    Return codes, handle and descriptor types, and call modes of the OCI layer.
    """

    # Return codes
    OCI_SUCCESS = 0
    OCI_SUCCESS_WITH_INFO = 1
    OCI_NEED_DATA = 99
    OCI_NO_DATA = 100
    OCI_ERROR = -1
    OCI_INVALID_HANDLE = -2
    OCI_STILL_EXECUTING = -3123
    OCI_CONTINUE = -24200

    # Generic mode
    OCI_DEFAULT = 0

    # Statement preparation / execution
    OCI_NTV_SYNTAX = 1
    OCI_DESCRIBE_ONLY = 0x00000010
    OCI_COMMIT_ON_SUCCESS = 0x00000020
    OCI_FETCH_NEXT = 0x00000002

    # Define / bind modes
    OCI_DYNAMIC_FETCH = 0x00000002
    OCI_DATA_AT_EXEC = 0x00000002

    # Piecewise operation
    OCI_ONE_PIECE = 0
    OCI_FIRST_PIECE = 1
    OCI_NEXT_PIECE = 2
    OCI_LAST_PIECE = 3

    # Indicators
    OCI_IND_NOTNULL = 0
    OCI_IND_NULL = -1
    OCI_IND_TRUNCATED_UNKNOWN = -2

    # Character set forms
    SQLCS_IMPLICIT = 1
    SQLCS_NCHAR = 2

    # LOB / file open modes
    OCI_LOB_READONLY = 1
    OCI_LOB_READWRITE = 2
    OCI_LOB_WRITEONLY = 3
    OCI_FILE_READONLY = 1

    # Temporary LOB types and duration
    OCI_TEMP_BLOB = 1
    OCI_TEMP_CLOB = 2
    OCI_DURATION_SESSION = 10

    # OCIServerRelease output
    OCI_SERVER_RELEASE_BANNER_SIZE = 512

    # Error message buffer
    OCI_ERROR_MAXMSG_SIZE = 3072


class ReturnCode(IntEnum):
    SUCCESS = ConstantsOCI.OCI_SUCCESS.value
    SUCCESS_WITH_INFO = ConstantsOCI.OCI_SUCCESS_WITH_INFO.value
    NEED_DATA = ConstantsOCI.OCI_NEED_DATA.value
    NO_DATA = ConstantsOCI.OCI_NO_DATA.value
    ERROR = ConstantsOCI.OCI_ERROR.value
    INVALID_HANDLE = ConstantsOCI.OCI_INVALID_HANDLE.value
    STILL_EXECUTING = ConstantsOCI.OCI_STILL_EXECUTING.value
    CONTINUE = ConstantsOCI.OCI_CONTINUE.value


class HandleType(IntEnum):
    ENV = 1
    ERROR = 2
    SVCCTX = 3
    STMT = 4
    BIND = 5
    DEFINE = 6
    DESCRIBE = 7
    SERVER = 8
    SESSION = 9
    TRANS = 10


class DescriptorType(IntEnum):
    LOB = 50
    PARAM = 53
    ROWID = 54
    FILE = 56
    INTERVAL_YM = 62
    INTERVAL_DS = 63
    DATE = 65
    TIMESTAMP = 68
    TIMESTAMP_TZ = 69
    TIMESTAMP_LTZ = 70


class Attribute(IntEnum):
    """Attribute identifiers read from parameter, statement and session handles."""

    DATA_SIZE = 1
    DATA_TYPE = 2
    NAME = 4
    PRECISION = 5
    SCALE = 6
    IS_NULL = 7
    ROW_COUNT = 9
    PREFETCH_ROWS = 11
    PARAM_COUNT = 18
    USERNAME = 22
    PASSWORD = 23
    STMT_TYPE = 24
    CHARSET_ID = 31
    CHARSET_FORM = 32
    PARSE_ERROR_OFFSET = 129
    ROWS_FETCHED = 197
    CHAR_USED = 285
    CHAR_SIZE = 286


# Service-context attributes; their values collide with SCALE and IS_NULL.
OCI_ATTR_SERVER = 6
OCI_ATTR_SESSION = 7


class SQLT(IntEnum):
    """External and internal datatype codes (ocidfn.h)."""

    CHR = 1
    NUM = 2
    INT = 3
    FLT = 4
    STR = 5
    VNU = 6
    LNG = 8
    VCS = 9
    RID = 11
    DAT = 12
    BFLOAT = 21
    BDOUBLE = 22
    BIN = 23
    LBI = 24
    UIN = 68
    LVC = 94
    LVB = 95
    AFC = 96
    AVC = 97
    IBFLOAT = 100
    IBDOUBLE = 101
    RDD = 104
    CLOB = 112
    BLOB = 113
    BFILE = 114
    CFILE = 115
    # Internal codes reported by the describe step
    TIMESTAMP_INTERNAL = 180
    TIMESTAMP_TZ_INTERNAL = 181
    INTERVAL_YM_INTERNAL = 182
    INTERVAL_DS_INTERNAL = 183
    DATE = 184
    TIME = 185
    TIME_TZ = 186
    TIMESTAMP = 187
    TIMESTAMP_TZ = 188
    INTERVAL_YM = 189
    INTERVAL_DS = 190
    UROWID = 208
    TIMESTAMP_LTZ_INTERNAL = 231
    TIMESTAMP_LTZ = 232
    BOL = 252


class StatementType(IntEnum):
    UNKNOWN = 0
    SELECT = 1
    UPDATE = 2
    DELETE = 3
    INSERT = 4
    CREATE = 5
    DROP = 6
    ALTER = 7
    BEGIN = 8
    DECLARE = 9
    CALL = 10
    MERGE = 16


class CreateMode(IntFlag):
    """Environment creation flags for OCIEnvNlsCreate."""

    DEFAULT = 0
    THREADED = 1 << 0
    OBJECT = 1 << 1
    EVENTS = 1 << 2
    NO_UCB = 1 << 6
    ENV_NO_MUTEX = 1 << 7
    SUPPRESS_NLS_VALIDATION = 1 << 20
    NCHAR_LITERAL_REPLACE_ON = 1 << 22
    NCHAR_LITERAL_REPLACE_OFF = 1 << 23
    ENABLE_NLS_VALIDATION = 1 << 24


class AuthMode(IntFlag):
    """Privilege flags passed to OCISessionBegin."""

    DEFAULT = 0
    MIGRATE = 0x00000001
    SYSDBA = 0x00000002
    SYSOPER = 0x00000004
    PRELIM_AUTH = 0x00000008
    STMT_CACHE = 0x00000040
    SYSASM = 0x00008000
    SYSBKP = 0x00020000
    SYSDGD = 0x00040000
    SYSKMT = 0x00080000
    SYSRAC = 0x00100000


OCI_CPOOL = 0x00000200


class AttachMode(Enum):
    """
    Server attach modes. POOL and CONNECTION_POOL both attach to a pool named by
    the server locator; creating that pool is outside this package.
    """

    DEFAULT = "default"
    POOL = "pool"
    CONNECTION_POOL = "connection_pool"

    @property
    def oci_mode(self) -> int:
        if self is AttachMode.DEFAULT:
            return ConstantsOCI.OCI_DEFAULT.value
        return OCI_CPOOL


class CredentialType(IntEnum):
    RDBMS = 1
    EXT = 2
    PROXY = 3


class Direction(Enum):
    """Bind direction of a statement parameter."""

    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    ATTACHED = "attached"
    LOGGED_ON = "logged_on"
    CLOSED = "closed"
