"""Serial link to the sensor board: reads JSON lines, runs the time exchange."""

from __future__ import annotations

import json
import threading
import time
from typing import Any

import serial

from .logs import Severity, log_message
from .ptp import Ptp
from .sensor import dispatch

__all__ = ["SerialManager"]

_POLL_INTERVAL = 10e-6
_IDLE_INTERVAL = 0.01
_SYNC_INTERVAL = 0.1


class SerialManager:
    """Owns the serial port and the receive and time-sync threads.

    ``trigger_manager`` and ``messenger`` may be set to route decoded
    messages elsewhere than the shared instances.
    """

    def __init__(self, port: str, baud_rate: int) -> None:
        self.port = port
        self.trigger_manager: Any = None
        self.messenger: Any = None
        self.ptp: Ptp | None = None
        self._running = threading.Event()
        self._wake = threading.Event()
        self._threads: list[threading.Thread] = []
        self._ignore_next = True
        self._serial = serial.serial_for_url(port, baudrate=baud_rate,
                                             timeout=1.0, do_not_open=True)
        try:
            self._serial.open()
        except serial.SerialException as exc:
            log_message(Severity.ERROR, f"Unable to open serial port: {port}, {exc}")
            if self._serial.is_open:
                self._serial.close()
            return
        self._serial.flush()
        log_message(Severity.ERROR, f"Serial port: {port} initialized and opened.")
        self.ptp = Ptp(send=self._serial.write)

    def is_available(self) -> bool:
        return bool(self._serial.is_open)

    def start(self) -> None:
        if self._running.is_set():
            return
        self._running.set()
        self._wake.clear()
        self._threads = [
            threading.Thread(target=self._receive, name="serial-rx", daemon=True),
            threading.Thread(target=self._synchronize, name="serial-tx", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        log_message(Severity.INFO, "Serial manager started")

    def stop(self) -> None:
        if not self._running.is_set():
            return
        self._running.clear()
        self._wake.set()
        if self._serial.is_open:
            self._serial.close()
            log_message(Severity.WARNING, f"Serial port: {self.port} closed.")
        for thread in self._threads:
            thread.join()
        self._threads = []
        log_message(Severity.INFO, "Serial manager stopped")

    def close(self) -> None:
        """Stop the threads and release the port."""
        self.stop()
        if self._serial.is_open:
            self._serial.close()
            log_message(Severity.ERROR, f"Serial port: {self.port} closed.")

    def __enter__(self) -> SerialManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def handle_line(self, line: bytes | str) -> dict | None:
        """Decode and dispatch one received line; return the message handled."""
        text = (line.decode("utf-8", errors="replace")
                if isinstance(line, (bytes, bytearray)) else line)
        if not text or self._ignore_next:
            # The first line is usually a fragment cut off mid-transmission.
            self._ignore_next = False
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            log_message(Severity.ERROR, f"Failed to parse JSON: {exc}")
            log_message(Severity.ERROR, f"Received data: {text}")
            return None
        if not data:
            return None
        if not isinstance(data, dict):
            log_message(Severity.ERROR, f"Received data is not an object: {text}")
            return None
        try:
            dispatch(data, self.ptp, self.trigger_manager, self.messenger)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            log_message(Severity.ERROR, f"Malformed message {text!r}: {exc}")
            return None
        return data

    def _receive(self) -> None:
        while self._running.is_set():
            line = None
            try:
                if self._serial.is_open:
                    if self._serial.in_waiting:
                        line = self._serial.readline()
                else:
                    time.sleep(_IDLE_INTERVAL)
                    continue
            except (serial.SerialException, OSError, TypeError):
                continue
            if line is not None:
                self.handle_line(line)
            time.sleep(_POLL_INTERVAL)

    def _synchronize(self) -> None:
        while self._running.is_set():
            if self.ptp is not None:
                try:
                    self.ptp.send_ptp_data()
                except (serial.SerialException, OSError, TypeError):
                    pass
            self._wake.wait(_SYNC_INTERVAL)