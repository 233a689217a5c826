"""Multi-sensor time synchronization with trigger, IMU and GPS data published on ZeroMQ."""

__version__ = "1.0.0"