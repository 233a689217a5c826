"""UDP link to the sensor board: receives JSON datagrams, runs the time exchange."""

from __future__ import annotations

import json
import socket
import struct
import threading
import time
from typing import Any

from .logs import Severity, log_message
from .ptp import Ptp
from .sensor import dispatch

__all__ = ["NetManager"]

_MAX_DATAGRAM = 65540
_RECV_TIMEOUT = 0.1
_POLL_INTERVAL = 10e-6
_SYNC_INTERVAL = 0.1


class NetManager:
    """Owns the UDP socket and the receive and time-sync threads.

    On creation a hello datagram carrying the host's monotonic time in
    microseconds is sent so the board learns where to report.
    """

    def __init__(self, target_ip: str, port: int) -> None:
        self.target_ip = target_ip
        self.port = port
        self.trigger_manager: Any = None
        self.messenger: Any = None
        self._address = (target_ip, port)
        self._running = threading.Event()
        self._wake = threading.Event()
        self._threads: list[threading.Thread] = []
        self._ignore_next = True
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            hello = struct.pack("<Q", time.monotonic_ns() // 1000)
            self._socket.sendto(hello, self._address)
        except OSError:
            self._socket.close()
            raise
        self._socket.settimeout(_RECV_TIMEOUT)
        self.ptp = Ptp(send=self._send)

    def _send(self, payload: bytes) -> None:
        self._socket.sendto(payload, self._address)

    def start(self) -> None:
        if self._running.is_set():
            return
        self._running.set()
        self._wake.clear()
        self._threads = [
            threading.Thread(target=self._receive, name="net-rx", daemon=True),
            threading.Thread(target=self._synchronize, name="net-tx", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        log_message(Severity.INFO, "Net manager started")

    def stop(self) -> None:
        if not self._running.is_set():
            return
        self._running.clear()
        self._wake.set()
        for thread in self._threads:
            thread.join()
        self._threads = []
        log_message(Severity.INFO, "Net manager stopped")

    def close(self) -> None:
        """Stop the threads and close the socket."""
        self.stop()
        self._socket.close()

    def __enter__(self) -> NetManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def handle_datagram(self, data: bytes) -> dict | None:
        """Decode and dispatch one datagram; return the message handled."""
        text = bytes(data).decode("utf-8", errors="replace")
        if not text or self._ignore_next:
            # The first datagram answers the hello and carries no message.
            self._ignore_next = False
            return None
        try:
            message = json.loads(text)
        except json.JSONDecodeError as exc:
            log_message(Severity.ERROR, f"Failed to parse JSON: {exc}")
            log_message(Severity.ERROR, f"Received data: {text}")
            return None
        if not message:
            return None
        if not isinstance(message, dict):
            log_message(Severity.ERROR, f"Received data is not an object: {text}")
            return None
        try:
            dispatch(message, self.ptp, self.trigger_manager, self.messenger)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            log_message(Severity.ERROR, f"Malformed message {text!r}: {exc}")
            return None
        return message

    def _receive(self) -> None:
        while self._running.is_set():
            try:
                data, _ = self._socket.recvfrom(_MAX_DATAGRAM)
            except OSError:
                continue
            if data:
                self.handle_datagram(data)
            time.sleep(_POLL_INTERVAL)

    def _synchronize(self) -> None:
        while self._running.is_set():
            try:
                self.ptp.send_ptp_data()
            except OSError:
                pass
            self._wake.wait(_SYNC_INTERVAL)