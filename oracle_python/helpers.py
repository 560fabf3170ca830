"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module provides helper functions for the oracle_python package.
"""

import contextlib
import threading
from typing import Iterator

from oracle_python.exceptions import Error, ErrorKind
from oracle_python.logging import logger


def log(level: str, message: str, *args) -> None:
    """
    Universal logging helper.

    Args:
        level: Log level ('debug', 'info', 'warning', 'error')
        message: Log message with optional format placeholders
        *args: Arguments for message formatting
    """
    getattr(logger, level)(message, *args)


@contextlib.contextmanager
def tolerate(*kinds: ErrorKind) -> Iterator[None]:
    """
    Ignore driver errors of the given kinds inside the block; any other error
    propagates unchanged.

    Example:
        with tolerate(ErrorKind.OBJECT_NOT_FOUND):
            conn.prepare("drop table type_text").execute()
    """
    try:
        yield
    except Error as e:
        if e.kind not in kinds:
            raise
        log('debug', "Tolerated error ORA-%05d (%s)", e.code, e.kind.value)


class Settings:
    """
    Package-wide tunables. They are read when a statement or result set is
    created, so changes apply to objects created afterwards.

    Attributes:
        arraysize: Rows per fetch round trip.
        prefetch_rows: OCI prefetch row count set on each statement.
        lob_chunk_size: Default amount (bytes or characters) per LOB read.
        long_piece_size: Buffer size of one LONG / LONG RAW piece.
        max_error_message_length: Native messages are cut to this length.
        lowercase: Lowercase column names in descriptions and Row attributes.
    """

    def __init__(self) -> None:
        self.arraysize: int = 100
        self.prefetch_rows: int = 2
        self.lob_chunk_size: int = 65536
        self.long_piece_size: int = 65536
        self.max_error_message_length: int = 512
        self.lowercase: bool = False


_settings: Settings = Settings()
_settings_lock: threading.Lock = threading.Lock()


def get_settings() -> Settings:
    """Return the global settings object"""
    with _settings_lock:
        return _settings
