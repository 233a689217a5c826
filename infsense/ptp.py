"""Two-way time-offset exchange (PTP style) with a sensor board."""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping

__all__ = ["compute_delay_offset", "Ptp"]

_UINT64 = 1 << 64
_INT64_MIN = 1 << 63


def _to_int64(value: int) -> int:
    value %= _UINT64
    return value - _UINT64 if value >= _INT64_MIN else value


def _half(value: int) -> int:
    """Divide by two, truncating toward zero."""
    return -((-value) // 2) if value < 0 else value // 2


def compute_delay_offset(t1: int, t2: int, t3: int, t4: int) -> tuple[int, int]:
    """Return (path delay, clock offset) from the four exchange timestamps.

    Differences wrap as 64-bit unsigned values and are read back as signed.
    """
    delay = _half(_to_int64(t4 - t3 + t2 - t1))
    offset = _half(_to_int64(t2 - t1 - t4 + t3))
    return delay, offset


def _now_us() -> int:
    return time.time_ns() // 1000


def _encode(message: Mapping[str, Any]) -> bytes:
    text = json.dumps(message, sort_keys=True, separators=(",", ":"))
    return (text + "\n").encode("utf-8")


class Ptp:
    """Host side of the time exchange.

    ``send`` receives each outgoing message as bytes; ``clock`` returns the
    host time in microseconds.
    """

    def __init__(self, send: Callable[[bytes], Any] | None = None,
                 clock: Callable[[], int] | None = None) -> None:
        self._send = send
        self._clock = clock if clock is not None else _now_us
        self._t1 = 0
        self._t2 = 0
        self._updated = False

    def set_transport(self, send: Callable[[bytes], Any] | None) -> None:
        self._send = send

    def receive_ptp_data(self, data: Mapping[str, Any]) -> bytes | None:
        """Handle an exchange message; return the correction sent, if any."""
        fun = data.get("f")
        if fun == "a":
            self._t1 = int(data["a"])
            self._t2 = int(data["b"])
            self._updated = True
        if fun == "b":
            t3 = int(data["a"])
            t4 = self._clock()
            if self._updated:
                delay, offset = compute_delay_offset(self._t1, self._t2, t3, t4)
                out = _encode({"f": "b", "a": delay, "b": offset})
                if self._send is not None:
                    self._send(out)
                    self._updated = False
                    return out
        return None

    def send_ptp_data(self) -> bytes:
        """Send a time mark to start an exchange and return it."""
        out = _encode({"f": "a", "a": self._clock()})
        if self._send is not None:
            self._send(out)
        return out