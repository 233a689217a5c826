import time

import pytest
import zmq

from infsense.messenger import Messenger, TopicMonitor


def _local(endpoint):
    return endpoint.replace("0.0.0.0", "127.0.0.1")


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def messenger():
    m = Messenger()
    yield m
    m.close()


@pytest.fixture
def monitor(messenger):
    mon = TopicMonitor(_local(messenger.endpoint()))
    yield mon
    mon.close()


def _warm_up(messenger, monitor):
    def ready():
        messenger.pub("warmup", "")
        return "warmup" in monitor.topics()
    assert _wait_until(ready)


def test_endpoint_is_tcp(messenger):
    assert messenger.endpoint().startswith("tcp://")


def test_pub_sends_two_frames(messenger):
    endpoint = messenger.endpoint()
    assert endpoint.startswith("tcp://")
    ctx = zmq.Context()
    sub = ctx.socket(zmq.SUB)
    sub.setsockopt(zmq.LINGER, 0)
    sub.setsockopt(zmq.SUBSCRIBE, b"")
    sub.connect(_local(endpoint))
    try:
        received = []

        def got_message():
            messenger.pub("imu1", "payload")
            if sub.poll(50):
                received.append(sub.recv_multipart())
                return True
            return False

        assert _wait_until(got_message)
        assert received[0] == [b"imu1", b"payload"]
    finally:
        sub.close()
        ctx.term()


def test_pub_struct_sends_binary(messenger):
    endpoint = messenger.endpoint()
    assert endpoint.startswith("tcp://")
    ctx = zmq.Context()
    sub = ctx.socket(zmq.SUB)
    sub.setsockopt(zmq.LINGER, 0)
    sub.setsockopt(zmq.SUBSCRIBE, b"gps")
    sub.connect(_local(endpoint))
    payload = bytes([0, 1, 2, 255])
    try:
        received = []

        def got_message():
            messenger.pub_struct("gps", payload)
            if sub.poll(50):
                received.append(sub.recv_multipart())
                return True
            return False

        assert _wait_until(got_message)
        assert received[0] == [b"gps", payload]
    finally:
        sub.close()
        ctx.term()


def test_pub_after_close_logs_error(capsys):
    m = Messenger()
    m.close()
    m.pub("topic", "data")
    assert "Exception:" in capsys.readouterr().err


def test_get_instance_is_singleton():
    first = Messenger.get_instance()
    second = Messenger.get_instance()
    assert first is second
    assert first.endpoint() == second.endpoint()
    assert first.endpoint().startswith("tcp://")


def test_monitor_without_messages(monitor):
    monitor.start()
    time.sleep(0.05)
    monitor.stop()
    assert monitor.frequencies() == {}
    assert "  No active topics\n" in monitor.summary()


def test_monitor_counts_topics(messenger, monitor):
    monitor.start()
    _warm_up(messenger, monitor)
    for _ in range(3):
        messenger.pub("trigger/cam_1", "x")
    messenger.pub_struct("imu1", b"\x01")
    assert _wait_until(lambda: monitor.frequencies().get("trigger/cam_1") == 3
                       and monitor.frequencies().get("imu1") == 1)
    monitor.stop()
    assert {"trigger/cam_1", "imu1", "warmup"} == monitor.topics()


def test_summary_orders_by_count(messenger, monitor):
    monitor.start()
    _warm_up(messenger, monitor)
    target = monitor.frequencies()["warmup"] + 5
    for _ in range(target):
        messenger.pub("busy", "")
    assert _wait_until(lambda: monitor.frequencies().get("busy") == target)
    monitor.stop()
    text = monitor.summary()
    assert text.startswith("\n--- Topic Monitor ---\n")
    assert text.endswith("---------------------\n")
    assert "  Active Topics (2):" in text
    assert text.index("• busy") < text.index("• warmup")
    assert str(monitor) == text


def test_stop_without_start_is_harmless(monitor):
    monitor.stop()
    assert monitor.frequencies() == {}


def test_monitor_bad_endpoint_raises():
    with pytest.raises(zmq.ZMQError):
        TopicMonitor("not-an-endpoint")