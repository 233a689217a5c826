"""Handlers for the JSON messages reported by the sensor board."""

from __future__ import annotations

import json
from typing import Any, Mapping

from .data import GPSData, ImuData
from .logs import log_message
from .messenger import Messenger
from .trigger import TriggerManager

__all__ = [
    "process_trigger_data",
    "process_imu_data",
    "process_gps_data",
    "process_log_data",
    "dispatch",
]


def _messenger_or_default(messenger: Any) -> Any:
    return Messenger.get_instance() if messenger is None else messenger


def process_trigger_data(data: Mapping[str, Any],
                         trigger_manager: TriggerManager | None = None) -> bool:
    """Record a trigger status message ("f": "t"); return whether it was one."""
    if data.get("f") != "t":
        return False
    time_stamp = int(data["t"])
    status = int(data["s"]) & 0xFFFF
    manager = TriggerManager.get_instance() if trigger_manager is None else trigger_manager
    manager.set_last_trigger_status(time_stamp, status)
    return True


def process_imu_data(data: Mapping[str, Any], messenger: Any = None) -> ImuData | None:
    """Publish an IMU message ("f": "imu") on topic 'imu1'."""
    if data.get("f") != "imu":
        return None
    d = data["d"]
    q = data["q"]
    imu = ImuData(
        time_stamp_us=int(data["t"]),
        temperature=float(d[6]),
        a=[float(v) for v in d[0:3]],
        g=[float(v) for v in d[3:6]],
        q=[float(q[i]) for i in range(4)],
    )
    _messenger_or_default(messenger).pub_struct("imu1", imu.pack())
    return imu


def process_gps_data(data: Mapping[str, Any], messenger: Any = None) -> GPSData | None:
    """Publish a GPS fix message ("f": "GNGGA") on topic 'gps'."""
    if data.get("f") != "GNGGA":
        return None
    d = data["d"]
    gps = GPSData(
        time_stamp_us=int(data["t"]),
        gps_stamp_us=int(d[2]),
        gps_stamp_us_trigger=int(d[3]),
        latitude=float(d[0]),
        longitude=float(d[1]),
    )
    _messenger_or_default(messenger).pub_struct("gps", gps.pack())
    return gps


def process_log_data(data: Mapping[str, Any]) -> bool:
    """Forward a board log message ("f": "log") to the local log."""
    if data.get("f") != "log":
        return False
    message = data["msg"]
    text = message if isinstance(message, str) else json.dumps(message)
    log_message(int(data["l"]), text)
    return True


def dispatch(data: Mapping[str, Any], ptp: Any = None,
             trigger_manager: TriggerManager | None = None,
             messenger: Any = None) -> None:
    """Pass a decoded message to the time exchange and every handler."""
    if not data:
        return
    if ptp is not None:
        ptp.receive_ptp_data(data)
    process_trigger_data(data, trigger_manager)
    process_imu_data(data, messenger)
    process_gps_data(data, messenger)
    process_log_data(data)