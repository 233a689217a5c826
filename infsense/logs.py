"""Lightweight glog-style logging with pluggable sinks."""

from __future__ import annotations

import enum
import inspect
import os
import sys
import threading
import time
from typing import IO

__all__ = [
    "Severity",
    "FatalLogError",
    "LogSink",
    "LogFileSink",
    "strip_basename",
    "format_record",
    "add_log_sink",
    "remove_log_sink",
    "log_sinks",
    "set_log_destination",
    "log_message",
    "check",
]

_SEVERITY_NAMES = ("INFO", "WARNING", "ERROR", "FATAL")


class Severity(enum.IntEnum):
    """Log severity levels; larger is less severe."""

    FATAL = -3
    ERROR = -2
    WARNING = -1
    INFO = 0


class FatalLogError(RuntimeError):
    """Raised after a FATAL message has been logged."""


def _severity_letter(severity: int) -> str:
    index = int(severity) + len(_SEVERITY_NAMES) - 1
    if not 0 <= index < len(_SEVERITY_NAMES):
        raise ValueError(f"unknown log severity: {severity!r}")
    return _SEVERITY_NAMES[index][0]


def _thread_id() -> int:
    if sys.platform.startswith("linux"):
        return os.getpid()
    if sys.platform == "win32":
        return threading.get_native_id()
    return 0


def strip_basename(path: str) -> str:
    """Return the part of ``path`` after the last '/'."""
    return path.rpartition("/")[2]


def format_record(severity: int, filename: str, line: int,
                  tm_time: time.struct_time, message: str,
                  tid: int | None = None) -> str:
    """Render one log line in the glog prefix format."""
    if tid is None:
        tid = _thread_id()
    usecs = 0
    return (
        f"{_severity_letter(severity)}"
        f"{tm_time.tm_mon:02d}{tm_time.tm_mday:02d} "
        f"{tm_time.tm_hour:02d}:{tm_time.tm_min:02d}:{tm_time.tm_sec:02d}"
        f".{usecs:06d} "
        f"{tid:>5d} "
        f"{filename}:{line}] "
        f"{message}"
    )


class LogSink:
    """Receiver of every logged message."""

    def send(self, severity: int, full_filename: str, base_filename: str,
             line: int, tm_time: time.struct_time, message: str) -> None:
        raise NotImplementedError

    def wait_till_sent(self) -> None:
        raise NotImplementedError


class LogFileSink(LogSink):
    """Writes messages at or above a severity to a timestamped file."""

    def __init__(self, severity: int, base_filename: str) -> None:
        self.severity = int(severity)
        self.base_filename = base_filename
        ti = time.localtime()
        self.log_file_name = (
            f"{base_filename}{ti.tm_year:04d}{ti.tm_mon:02d}{ti.tm_mday:02d}"
            f"-{ti.tm_hour:02d}-{ti.tm_min:02d}-{ti.tm_sec:02d}.log"
        )
        self._file: IO[str] | None
        try:
            self._file = open(self.log_file_name, "w+", encoding="utf-8")
        except OSError:
            self._file = None

    def send(self, severity: int, full_filename: str, base_filename: str,
             line: int, tm_time: time.struct_time, message: str) -> None:
        if severity >= self.severity and self._file is not None:
            self._file.write(
                format_record(severity, base_filename, line, tm_time, message))

    def wait_till_sent(self) -> None:
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


_sinks_lock = threading.RLock()
_sinks: set[LogSink] = set()
_file_sinks: dict[int, LogFileSink] = {}


def add_log_sink(sink: LogSink) -> None:
    with _sinks_lock:
        _sinks.add(sink)


def remove_log_sink(sink: LogSink) -> None:
    with _sinks_lock:
        _sinks.discard(sink)


def log_sinks() -> frozenset[LogSink]:
    """Return a snapshot of the registered sinks."""
    with _sinks_lock:
        return frozenset(_sinks)


def set_log_destination(severity: int, base_filename: str) -> None:
    """Open, replace or (with an empty name) close the file sink for a severity."""
    severity = int(severity)
    with _sinks_lock:
        old = _file_sinks.pop(severity, None)
        if old is None and not base_filename:
            return
        if old is not None:
            remove_log_sink(old)
            old.close()
        if base_filename:
            sink = LogFileSink(severity, base_filename)
            _file_sinks[severity] = sink
            add_log_sink(sink)


def log_message(severity: int, message: str, file: str | None = None,
                line: int | None = None) -> None:
    """Log to stderr and all sinks; raise FatalLogError for FATAL."""
    if file is None or line is None:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        if caller is not None:
            file = caller.f_code.co_filename if file is None else file
            line = caller.f_lineno if line is None else line
        file = file or "<unknown>"
        line = line or 0
    base = strip_basename(file)
    text = f"{message}\n"
    sys.stderr.write(f"{base}:{line} {text}")
    tm_time = time.localtime()
    sinks = log_sinks()
    for sink in sinks:
        sink.send(severity, file, base, line, tm_time, text)
    for sink in sinks:
        sink.wait_till_sent()
    if severity == Severity.FATAL:
        raise FatalLogError(message)


def check(condition: object, message: str = "") -> None:
    """Log a FATAL 'Check failed' message when ``condition`` is false."""
    if not condition:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        file = caller.f_code.co_filename if caller is not None else None
        line = caller.f_lineno if caller is not None else None
        log_message(Severity.FATAL, f"Check failed: {message} ", file, line)