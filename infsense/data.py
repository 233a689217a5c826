"""Sensor record types and trigger device identifiers."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

from .image import GMat

__all__ = ["TriggerDevice", "ImuData", "CamData", "LaserData", "GPSData"]


class TriggerDevice(enum.IntEnum):
    """Devices whose trigger state is reported in the status bit field."""

    IMU_1 = 0  # internal imu
    IMU_2 = 1  # external imu
    CAM_1 = 2
    CAM_2 = 3
    CAM_3 = 4
    CAM_4 = 5
    LASER = 6  # laser pps
    GPS = 7  # gps pps


_IMU_FORMAT = struct.Struct("<Qf3f3f4f")
_GPS_FORMAT = struct.Struct("<QQQff")


@dataclass
class ImuData:
    """One IMU sample: acceleration, angular rate and orientation quaternion."""

    time_stamp_us: int = 0
    temperature: float = 0.0
    name: str = ""
    a: list[float] = field(default_factory=lambda: [0.0] * 3)
    g: list[float] = field(default_factory=lambda: [0.0] * 3)
    q: list[float] = field(default_factory=lambda: [0.0] * 4)

    def pack(self) -> bytes:
        """Encode the numeric fields as little-endian binary."""
        if len(self.a) != 3 or len(self.g) != 3 or len(self.q) != 4:
            raise ValueError("a and g need 3 values, q needs 4")
        return _IMU_FORMAT.pack(self.time_stamp_us, self.temperature,
                                *self.a, *self.g, *self.q)

    @classmethod
    def unpack(cls, payload: bytes, name: str = "") -> ImuData:
        """Decode what ``pack`` produced."""
        values = _IMU_FORMAT.unpack(payload)
        return cls(time_stamp_us=values[0], temperature=values[1], name=name,
                   a=list(values[2:5]), g=list(values[5:8]), q=list(values[8:12]))


@dataclass
class CamData:
    time_stamp_us: int = 0
    name: str = ""
    image: GMat = field(default_factory=GMat)


@dataclass
class LaserData:
    time_stamp_us: int = 0
    name: str = ""


@dataclass
class GPSData:
    """A GPS fix with its host and GPS timestamps."""

    time_stamp_us: int = 0
    gps_stamp_us: int = 0
    gps_stamp_us_trigger: int = 0
    name: str = ""
    latitude: float = 0.0
    longitude: float = 0.0

    def pack(self) -> bytes:
        """Encode the numeric fields as little-endian binary."""
        return _GPS_FORMAT.pack(self.time_stamp_us, self.gps_stamp_us,
                                self.gps_stamp_us_trigger,
                                self.latitude, self.longitude)

    @classmethod
    def unpack(cls, payload: bytes, name: str = "") -> GPSData:
        """Decode what ``pack`` produced."""
        stamp, gps_stamp, gps_trigger, lat, lon = _GPS_FORMAT.unpack(payload)
        return cls(time_stamp_us=stamp, gps_stamp_us=gps_stamp,
                   gps_stamp_us_trigger=gps_trigger, name=name,
                   latitude=lat, longitude=lon)