# infsense

`infsense` talks to a synchronization board over a serial port or UDP. It keeps
the host clock and the board clock aligned with a PTP-style exchange, and it
publishes what the board reports on a local ZeroMQ PUB socket: trigger events
for IMUs, cameras, laser and GPS, IMU samples, and GPS fixes.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command line

```
infsense
```

With no options this opens a serial link on `/dev/ttyACM0` at 460800 baud,
counts the published topics for one second and logs a summary, then keeps
running until interrupted.

Options:

- `--serial DEV`: serial device of the board (default `/dev/ttyACM0`)
- `--baud N`: serial baud rate (default 460800)
- `--net IP`: use a UDP link to the board at this address instead of serial
- `--port N`: UDP port of the board (default 8888)
- `--log-path PREFIX`: also write log records to a file named from this prefix
- `--duration SECONDS`: exit after this many seconds

`--serial` and `--net` cannot be given together.

## Library use

```python
from infsense.synchronizer import Synchronizer
from infsense.data import TriggerDevice

sync = Synchronizer()
sync.set_serial_link("/dev/ttyACM0", 460800)
# or, for a board on the network:
# sync.set_net_link("192.168.1.188", 8888)

sync.start()
Synchronizer.print_summary()

triggered, time_us = Synchronizer.get_last_trigger_time(TriggerDevice.CAM_1)

sync.stop()
sync.close()
```

`get_last_trigger_time` returns `(triggered, time)`. A device that has never
been triggered reports `(False, 2**64 - 1)`.

`Synchronizer.set_log_path(prefix)` adds a file sink whose name is the prefix
followed by the local time as `YYYYMMDD-HH-MM-SS.log`. Every log record is
written to it. Log records also go to standard error.

`set_serial_link` drops any network link that was configured before it. On both
links the first line or datagram received after creation is discarded.

## Published topics

Every message has two ZeroMQ frames: the topic first, then a little-endian
binary payload. The publisher binds an ephemeral TCP port, which you can read
from `Messenger.get_instance().endpoint()` in `infsense.messenger`.

| Topic            | Payload                                                |
|------------------|--------------------------------------------------------|
| `imu1`           | `ImuData.pack()`: `<Qf3f3f4f` (time, temperature, a, g, q) |
| `gps`            | `GPSData.pack()`: `<QQQff` (time, gps time, gps trigger time, latitude, longitude) |
| `trigger/imu_1`  | `<Q?7x`: trigger time in microseconds, status          |
| `trigger/imu_2`  | same                                                   |
| `trigger/cam_1`  | same                                                   |
| `trigger/cam_2`  | same                                                   |
| `trigger/cam_3`  | same                                                   |
| `trigger/cam_4`  | same                                                   |
| `trigger/laser`  | same                                                   |
| `trigger/gps`    | same                                                   |

`ImuData.unpack` and `GPSData.unpack` decode these payloads. `TopicMonitor` in
`infsense.messenger` subscribes to every topic and counts the messages.
`TopicMonitor.summary()` lists the counts, busiest topic first.

## Modules

- `infsense.synchronizer`: `Synchronizer` and `main`, the `infsense` command
- `infsense.serial_manager` / `infsense.net_manager`: `SerialManager` and `NetManager`, the serial and UDP links to the board
- `infsense.ptp`: `compute_delay_offset` and `Ptp`, the delay and offset exchange
- `infsense.sensor`: handlers for the board's JSON records (`dispatch` and the `process_*` functions)
- `infsense.trigger`: `TriggerManager`, which tracks the last trigger of each device
- `infsense.messenger`: `Messenger` and `TopicMonitor` on ZeroMQ
- `infsense.data`: `TriggerDevice` and the record types `ImuData`, `GPSData`, `CamData`, `LaserData`
- `infsense.image`: `GMat`, a small typed image matrix
- `infsense.logs`: severity-based logging with pluggable sinks and file sinks

## What it does not do

The package does not open or capture from cameras. It tracks camera trigger
events and publishes them, and `CamData` and `GMat` are available as record
types, but nothing in the package grabs images.