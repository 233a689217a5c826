"""Latest trigger state of each device, decoded from the status bit field."""

from __future__ import annotations

import struct
import threading
from typing import Any

from .data import TriggerDevice
from .logs import Severity, log_message
from .messenger import Messenger

__all__ = ["TriggerManager", "DEVICE_TOPICS", "NEVER_TRIGGERED"]

NEVER_TRIGGERED = 2**64 - 1

DEVICE_TOPICS: dict[TriggerDevice, str] = {
    TriggerDevice.IMU_1: "trigger/imu_1",
    TriggerDevice.IMU_2: "trigger/imu_2",
    TriggerDevice.CAM_1: "trigger/cam_1",
    TriggerDevice.CAM_2: "trigger/cam_2",
    TriggerDevice.CAM_3: "trigger/cam_3",
    TriggerDevice.CAM_4: "trigger/cam_4",
    TriggerDevice.LASER: "trigger/laser",
    TriggerDevice.GPS: "trigger/gps",
}

# uint64 timestamp, bool status, padded to 16 bytes.
_DEVICE_STATUS = struct.Struct("<Q?7x")


class TriggerManager:
    """Tracks when each device was last triggered and publishes every trigger."""

    _instance: TriggerManager | None = None
    _instance_lock = threading.Lock()

    def __init__(self, messenger: Any = None) -> None:
        self._messenger = messenger
        self._lock = threading.Lock()
        self._status = 0
        self._status_map: dict[TriggerDevice, tuple[bool, int]] = {
            device: (False, NEVER_TRIGGERED) for device in TriggerDevice
        }

    @classmethod
    def get_instance(cls) -> TriggerManager:
        """Return the process-wide trigger manager."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def set_last_trigger_status(self, time: int, status: int) -> None:
        """Record ``time`` for every device whose bit is set in ``status``."""
        with self._lock:
            self._status = int(status) & 0xFF
            for device in TriggerDevice:
                if (self._status >> int(device)) & 1:
                    self._status_map[device] = (True, time)
                    self._publish(device, time, True)

    def get_last_trigger_status(self, device: int) -> tuple[bool, int | None]:
        """Return (triggered, last trigger time); (False, None) for unknown devices."""
        with self._lock:
            try:
                key = TriggerDevice(device)
            except ValueError:
                return False, None
            return self._status_map[key]

    def _publish(self, device: TriggerDevice, time: int, status: bool) -> None:
        topic = DEVICE_TOPICS[device]
        try:
            messenger = self._messenger
            if messenger is None:
                messenger = Messenger.get_instance()
            messenger.pub_struct(topic, _DEVICE_STATUS.pack(time, status))
        except Exception as exc:  # publishing must never break trigger tracking
            log_message(Severity.ERROR, f"Failed to publish {topic} status: {exc}")