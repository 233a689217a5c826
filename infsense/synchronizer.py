"""Top-level entry point tying the board links and publishers together."""

from __future__ import annotations

import argparse
import time
from typing import Sequence

from .logs import Severity, log_message, set_log_destination
from .messenger import TopicMonitor
from .net_manager import NetManager
from .serial_manager import SerialManager
from .trigger import TriggerManager

__all__ = ["Synchronizer", "main"]

_BANNER = "\n  == InfiniteSense synchronizer =="


class Synchronizer:
    """Configures a serial or network link to the board and runs it."""

    def __init__(self) -> None:
        self.net_ip = ""
        self.net_port = 0
        self.serial_dev = ""
        self.serial_baud_rate = 0
        self.net_manager: NetManager | None = None
        self.serial_manager: SerialManager | None = None
        log_message(Severity.INFO, _BANNER)

    @staticmethod
    def set_log_path(path: str) -> None:
        """Also write fatal messages to a file named from ``path``."""
        set_log_destination(Severity.FATAL, path)

    def set_serial_link(self, serial_dev: str, serial_baud_rate: int) -> None:
        """Use a serial link; this drops any network link."""
        self.serial_dev = serial_dev
        self.serial_baud_rate = serial_baud_rate
        if self.serial_manager is not None:
            self.serial_manager.close()
        self.serial_manager = SerialManager(serial_dev, serial_baud_rate)
        if self.net_manager is not None:
            self.net_manager.close()
        self.net_manager = None

    def set_net_link(self, net_dev: str, port: int) -> None:
        """Use a UDP link to the board at ``net_dev``:``port``."""
        self.net_ip = net_dev
        self.net_port = port
        if self.net_manager is not None:
            self.net_manager.close()
        self.net_manager = NetManager(net_dev, port)

    @staticmethod
    def get_last_trigger_time(device: int) -> tuple[bool, int | None]:
        """Return (triggered, last trigger time in microseconds) for ``device``."""
        return TriggerManager.get_instance().get_last_trigger_status(device)

    def start(self) -> None:
        if self.net_manager is not None:
            self.net_manager.start()
        if self.serial_manager is not None:
            self.serial_manager.start()
        log_message(Severity.INFO, "Synchronizer started")

    def stop(self) -> None:
        if self.net_manager is not None:
            self.net_manager.stop()
        if self.serial_manager is not None:
            self.serial_manager.stop()
        log_message(Severity.INFO, "Synchronizer stopped")

    def close(self) -> None:
        """Stop and release both links."""
        for manager in (self.net_manager, self.serial_manager):
            if manager is not None:
                manager.close()

    @staticmethod
    def print_summary() -> str:
        """Count published topics for one second, log and return the summary."""
        monitor = TopicMonitor.get_instance()
        monitor.start()
        time.sleep(1.0)
        monitor.stop()
        summary = monitor.summary()
        log_message(Severity.INFO, summary)
        return summary


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="infsense",
        description="Synchronize sensor time stamps and publish sensor data.")
    link = parser.add_mutually_exclusive_group()
    link.add_argument("--serial", default="/dev/ttyACM0",
                      help="serial device of the board")
    link.add_argument("--net", metavar="IP", help="address of the board on the network")
    parser.add_argument("--baud", type=int, default=460800, help="serial baud rate")
    parser.add_argument("--port", type=int, default=8888, help="UDP port of the board")
    parser.add_argument("--log-path", help="prefix for the fatal log file")
    parser.add_argument("--duration", type=float,
                        help="seconds to run before exiting (default: until interrupted)")
    args = parser.parse_args(argv)

    synchronizer = Synchronizer()
    if args.log_path:
        Synchronizer.set_log_path(args.log_path)
    if args.net:
        synchronizer.set_net_link(args.net, args.port)
    else:
        synchronizer.set_serial_link(args.serial, args.baud)
    synchronizer.start()
    try:
        Synchronizer.print_summary()
        deadline = None if args.duration is None else time.monotonic() + args.duration
        while True:
            if deadline is None:
                time.sleep(1.0)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(1.0, remaining))
    except KeyboardInterrupt:
        pass
    finally:
        synchronizer.stop()
        synchronizer.close()
    return 0