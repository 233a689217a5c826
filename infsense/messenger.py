"""ZeroMQ publisher for sensor data and a monitor counting published topics."""

from __future__ import annotations

import threading
from collections import Counter

import zmq

from .logs import Severity, log_message

__all__ = ["Messenger", "TopicMonitor"]


class Messenger:
    """Publishes two-frame messages (topic, payload) on an ephemeral TCP port."""

    _instance: Messenger | None = None
    _instance_lock = threading.Lock()

    def __init__(self, context: zmq.Context | None = None) -> None:
        self._owns_context = context is None
        self._context = zmq.Context(1) if context is None else context
        self._send_lock = threading.Lock()
        self._endpoint = ""
        self._socket = self._context.socket(zmq.PUB)
        self._socket.setsockopt(zmq.LINGER, 0)
        self._socket.setsockopt(zmq.RCVTIMEO, 1000)
        try:
            self._socket.bind("tcp://*:0")
            self._endpoint = self._socket.getsockopt_string(zmq.LAST_ENDPOINT)
            log_message(Severity.INFO, f"ZMQ PUB: {self._endpoint}")
        except zmq.ZMQError as exc:
            log_message(Severity.ERROR, f"Failed to bind ZMQ publisher: {exc}")
            self._socket.close()
            if self._owns_context:
                self._context.term()

    @classmethod
    def get_instance(cls) -> Messenger:
        """Return the process-wide messenger, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def endpoint(self) -> str:
        """The endpoint the publisher is bound to, or '' if binding failed."""
        return self._endpoint

    def pub(self, topic: str, metadata: str) -> None:
        """Publish a text payload under ``topic``."""
        self._send(topic, metadata.encode("utf-8"))

    def pub_struct(self, topic: str, data: bytes | bytearray | memoryview) -> None:
        """Publish a binary payload under ``topic``."""
        self._send(topic, bytes(data))

    def _send(self, topic: str, payload: bytes) -> None:
        try:
            with self._send_lock:
                self._socket.send(topic.encode("utf-8"), zmq.SNDMORE)
                self._socket.send(payload, zmq.DONTWAIT)
        except zmq.ZMQError as exc:
            log_message(Severity.ERROR, f"Exception: {exc}")

    def close(self) -> None:
        with self._send_lock:
            if not self._socket.closed:
                self._socket.close()
        if self._owns_context and not self._context.closed:
            self._context.term()


class TopicMonitor:
    """Subscribes to every topic of a publisher and counts messages per topic."""

    _instance: TopicMonitor | None = None
    _instance_lock = threading.Lock()

    def __init__(self, endpoint: str | None = None,
                 context: zmq.Context | None = None) -> None:
        if endpoint is None:
            endpoint = Messenger.get_instance().endpoint()
        self._owns_context = context is None
        self._context = zmq.Context(1) if context is None else context
        self._frequencies: Counter[str] = Counter()
        self._lock = threading.Lock()
        self._should_run = threading.Event()
        self._thread: threading.Thread | None = None
        self._socket = self._context.socket(zmq.SUB)
        try:
            self._socket.connect(endpoint)
            self._socket.setsockopt(zmq.SUBSCRIBE, b"")
        except zmq.ZMQError as exc:
            log_message(Severity.ERROR, f"[TopicMonitor] Initialization failed: {exc}")
            self._socket.close(linger=0)
            if self._owns_context:
                self._context.term()
            raise

    @classmethod
    def get_instance(cls) -> TopicMonitor:
        """Return the process-wide monitor of the shared messenger."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def topics(self) -> set[str]:
        """Topics seen so far."""
        with self._lock:
            return set(self._frequencies)

    def frequencies(self) -> dict[str, int]:
        """Message counts per topic."""
        with self._lock:
            return dict(self._frequencies)

    def start(self) -> None:
        """Start counting in a background thread; does nothing if running."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._should_run.set()
        self._thread = threading.Thread(target=self._monitor_loop,
                                        name="topic-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if not self._should_run.is_set():
            return
        self._should_run.clear()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _monitor_loop(self) -> None:
        poller = zmq.Poller()
        poller.register(self._socket, zmq.POLLIN)
        while self._should_run.is_set():
            try:
                if not poller.poll(10):
                    continue
                parts = self._socket.recv_multipart(zmq.NOBLOCK)
            except zmq.Again:
                continue
            except zmq.ZMQError as exc:
                if exc.errno == zmq.ETERM:
                    break
                continue
            topic = parts[0].decode("utf-8", errors="replace")
            with self._lock:
                self._frequencies[topic] += 1

    def summary(self) -> str:
        """Render the counted topics, most frequent first."""
        with self._lock:
            counts = sorted(self._frequencies.items(),
                            key=lambda item: (-item[1], item[0]))
        lines = ["", "--- Topic Monitor ---"]
        if not counts:
            lines.append("  No active topics")
        else:
            lines.append(f"  Active Topics ({len(counts)}):")
            lines.extend(f"    • {topic} (num: {count})" for topic, count in counts)
        lines.append("---------------------")
        return "\n".join(lines) + "\n"

    __str__ = summary

    def close(self) -> None:
        self.stop()
        if not self._socket.closed:
            self._socket.close(linger=0)
        if self._owns_context and not self._context.closed:
            self._context.term()