"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.

Driver logging for oracle_python.
Logging is off (CRITICAL) until setup_logging() is called; every message then goes
through credential sanitizing and carries the trace id of the current context.
"""

import contextvars
import datetime
import logging
import os
import re
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional


DEBUG = logging.DEBUG

# Output destinations
STDOUT = 'stdout'
FILE = 'file'
BOTH = 'both'

LOG_DIR_NAME = "oracle_python_logs"
MAX_LOG_BYTES = 512 * 1024 * 1024
BACKUP_COUNT = 5

_trace_id_var = contextvars.ContextVar('oracle_python_trace_id', default=None)

_SANITIZE_PATTERNS = [
    (re.compile(r'(password|passwd|pwd)\s*[=:]\s*[^;,\s)]+', re.IGNORECASE), r'\1=***'),
    (re.compile(r'(identified\s+by\s+)("[^"]*"|\S+)', re.IGNORECASE), r'\1***'),
    (re.compile(r'(\w+)/[^@\s/]+@', re.IGNORECASE), r'\1/***@'),
    (re.compile(r'(token|api_key|apikey)\s*[=:]\s*[^;,\s]+', re.IGNORECASE), r'\1=***'),
]


class TraceIDFilter(logging.Filter):
    """Injects the context trace id into every record."""

    def filter(self, record):
        trace_id = _trace_id_var.get()
        record.trace_id = trace_id if trace_id else '-'
        return True


class OracleLogger:
    """
    Process-wide logger of the driver.

    Environment, connection and statement objects tag their messages with a
    trace id (ENV-/CONN-/STMT-<pid>-<thread>-<counter>) so a single session can
    be followed through a log shared by many threads.
    """

    _instance: Optional['OracleLogger'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'OracleLogger':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(OracleLogger, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized'):
            return
        self._initialized = True

        self._logger = logging.getLogger('oracle_python')
        self._logger.setLevel(logging.CRITICAL)
        self._logger.propagate = False
        self._logger.addFilter(TraceIDFilter())

        self._trace_counter = 0
        self._trace_lock = threading.Lock()

        self._output_mode = FILE
        self._file_handler = None
        self._stdout_handler = None
        self._log_file = None
        self._custom_log_path = None
        # Handlers are created on first setup_logging() so that merely importing
        # the package never creates a log file.
        self._handlers_initialized = False

    def _setup_handlers(self):
        for handler in self._logger.handlers[:]:
            handler.close()
            self._logger.removeHandler(handler)
        self._file_handler = None
        self._stdout_handler = None

        formatter = logging.Formatter(
            '%(asctime)s [%(trace_id)s] - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )

        if self._output_mode in (FILE, BOTH):
            if self._custom_log_path:
                self._log_file = self._custom_log_path
                log_dir = os.path.dirname(self._custom_log_path)
                if log_dir:
                    os.makedirs(log_dir, exist_ok=True)
            else:
                log_dir = os.path.join(os.getcwd(), LOG_DIR_NAME)
                os.makedirs(log_dir, exist_ok=True)
                timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
                self._log_file = os.path.join(
                    log_dir, f"oracle_python_trace_{timestamp}_{os.getpid()}.log"
                )
            self._file_handler = RotatingFileHandler(
                self._log_file, maxBytes=MAX_LOG_BYTES, backupCount=BACKUP_COUNT
            )
            self._file_handler.setFormatter(formatter)
            self._logger.addHandler(self._file_handler)
        else:
            self._log_file = None

        if self._output_mode in (STDOUT, BOTH):
            self._stdout_handler = logging.StreamHandler(sys.stdout)
            self._stdout_handler.setFormatter(formatter)
            self._logger.addHandler(self._stdout_handler)

    @staticmethod
    def _sanitize_message(msg: str) -> str:
        """
        Mask credentials in a message: key=value passwords, IDENTIFIED BY clauses,
        user/password@dsn connect strings and tokens.
        """
        for pattern, replacement in _SANITIZE_PATTERNS:
            msg = pattern.sub(replacement, msg)
        return msg

    def generate_trace_id(self, prefix: str = "TRACE") -> str:
        """
        Build a unique trace id of the form PREFIX-PID-ThreadID-Counter.

        Args:
            prefix: Object family, e.g. "ENV", "CONN", "STMT".
        """
        with self._trace_lock:
            self._trace_counter += 1
            counter = self._trace_counter
        return f"{prefix}-{os.getpid()}-{threading.get_ident()}-{counter}"

    def set_trace_id(self, trace_id: str):
        _trace_id_var.set(trace_id)

    def get_trace_id(self) -> Optional[str]:
        return _trace_id_var.get()

    def clear_trace_id(self):
        _trace_id_var.set(None)

    def _log(self, level: int, msg: str, *args, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        if args:
            msg = msg % args
        self._logger.log(level, self._sanitize_message(msg), **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, f"[Python] {msg}", *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, f"[Python] {msg}", *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, f"[Python] {msg}", *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, f"[Python] {msg}", *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, f"[Python] {msg}", *args, **kwargs)

    def log(self, level: int, msg: str, *args, **kwargs):
        self._log(level, f"[Python] {msg}", *args, **kwargs)

    def _setLevel(self, level: int, output: Optional[str] = None, log_file_path: Optional[str] = None):
        """
        Set the level and (re)build handlers. Use setup_logging() instead.

        Raises:
            ValueError: If output is not one of FILE, STDOUT, BOTH.
        """
        if output is not None:
            _validate_output(output)
            self._output_mode = output
        if log_file_path is not None:
            self._custom_log_path = log_file_path
        if not self._handlers_initialized or output is not None or log_file_path is not None:
            self._setup_handlers()
            self._handlers_initialized = True
        self._logger.setLevel(level)

    def getLevel(self) -> int:
        return self._logger.level

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def addHandler(self, handler: logging.Handler):
        self._logger.addHandler(handler)

    def removeHandler(self, handler: logging.Handler):
        self._logger.removeHandler(handler)

    @property
    def handlers(self) -> list:
        return self._logger.handlers

    def reset_handlers(self):
        """Recreate handlers, e.g. after the log file was removed."""
        self._setup_handlers()

    @property
    def output(self) -> str:
        return self._output_mode

    @output.setter
    def output(self, mode: str):
        _validate_output(mode)
        self._output_mode = mode
        if self._handlers_initialized:
            self._setup_handlers()

    @property
    def log_file(self) -> Optional[str]:
        """Current log file path, None when file output is disabled."""
        return self._log_file

    @property
    def level(self) -> int:
        return self._logger.level


def _validate_output(mode: str) -> None:
    if mode not in (FILE, STDOUT, BOTH):
        raise ValueError(
            f"Invalid output mode: {mode}. Must be one of: {FILE}, {STDOUT}, {BOTH}"
        )


logger = OracleLogger()


def setup_logging(output: str = 'file', log_file_path: Optional[str] = None):
    """
    Enable DEBUG logging of the driver.

    Args:
        output: 'file' (default, ./oracle_python_logs/), 'stdout' or 'both'.
        log_file_path: Optional explicit log file.

    Returns:
        OracleLogger: The driver logger.

    Examples:
        import oracle_python
        oracle_python.setup_logging(output='stdout')
        oracle_python.setup_logging(output='both', log_file_path="/tmp/oci.log")
    """
    logger._setLevel(logging.DEBUG, output, log_file_path)
    return logger
