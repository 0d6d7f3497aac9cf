"""Tests for BuildEventListener and EventSender over real loopback sockets."""

from __future__ import annotations

import socket
import threading
import time

import pytest

from notchbuild.bridge.listener import BuildEventListener
from notchbuild.bridge.sender import EventSender
from notchbuild.core.delivery import DeliveryQueue
from notchbuild.models.events import BuildEvent, EventKind

STARTED = b'{"event":"started","tool":"maven","timestamp":1700000000.5}\n'
PROGRESS = b'{"event":"progressUpdated","tool":"maven","timestamp":1700000001.0,"progress":0.3}\n'


class Collector:
    def __init__(self) -> None:
        self.events: list[BuildEvent] = []
        self.threads: set[str] = set()
        self._cond = threading.Condition()

    def __call__(self, event: BuildEvent) -> None:
        with self._cond:
            self.events.append(event)
            self.threads.add(threading.current_thread().name)
            self._cond.notify_all()

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.events) >= count, timeout)


@pytest.fixture
def delivery():
    queue = DeliveryQueue(name="test-delivery")
    queue.start()
    yield queue
    queue.stop()


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def listener(collector, delivery):
    lst = BuildEventListener(collector, delivery, host="127.0.0.1", port=0)
    assert lst.start() is True
    yield lst
    lst.stop()


def _connect(listener: BuildEventListener) -> socket.socket:
    assert listener.address is not None
    return socket.create_connection(listener.address, timeout=2.0)


class TestListener:
    def test_binds_ephemeral_port(self, listener):
        host, port = listener.address
        assert host == "127.0.0.1"
        assert port > 0
        assert listener.is_listening

    def test_reuse_address_is_set(self, listener):
        server = listener._server
        assert server.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0

    def test_delivers_one_message(self, listener, collector):
        with _connect(listener) as sock:
            sock.sendall(STARTED)
        assert collector.wait_for(1)
        assert collector.events[0].event == EventKind.STARTED

    def test_split_across_writes(self, listener, collector):
        with _connect(listener) as sock:
            sock.sendall(STARTED[:10])
            time.sleep(0.05)
            sock.sendall(STARTED[10:])
        assert collector.wait_for(1)
        time.sleep(0.1)
        assert len(collector.events) == 1

    def test_two_messages_in_one_write(self, listener, collector):
        with _connect(listener) as sock:
            sock.sendall(STARTED + PROGRESS)
        assert collector.wait_for(2)
        assert [e.event for e in collector.events] == [
            EventKind.STARTED,
            EventKind.PROGRESS_UPDATED,
        ]

    def test_malformed_messages_are_dropped(self, listener, collector):
        with _connect(listener) as sock:
            sock.sendall(b"garbage\n{\"event\":\"nope\"}\n" + PROGRESS)
        assert collector.wait_for(1)
        time.sleep(0.1)
        assert [e.event for e in collector.events] == [EventKind.PROGRESS_UPDATED]

    def test_partial_message_discarded_on_close(self, listener, collector):
        with _connect(listener) as sock:
            sock.sendall(STARTED + PROGRESS[:15])
        assert collector.wait_for(1)
        time.sleep(0.1)
        assert len(collector.events) == 1

    def test_concurrent_connections(self, listener, collector):
        first = _connect(listener)
        second = _connect(listener)
        try:
            first.sendall(STARTED[:12])
            second.sendall(PROGRESS)
            assert collector.wait_for(1)
            first.sendall(STARTED[12:])
            assert collector.wait_for(2)
        finally:
            first.close()
            second.close()
        assert {e.event for e in collector.events} == {
            EventKind.STARTED,
            EventKind.PROGRESS_UPDATED,
        }

    def test_callback_runs_on_delivery_thread(self, listener, collector):
        for _ in range(3):
            with _connect(listener) as sock:
                sock.sendall(PROGRESS)
        assert collector.wait_for(3)
        assert collector.threads == {"test-delivery"}

    def test_stop_closes_endpoint(self, listener):
        address = listener.address
        listener.stop()
        assert listener.address is None
        assert not listener.is_listening
        with pytest.raises(OSError):
            socket.create_connection(address, timeout=0.5)

    def test_stop_closes_open_connections(self, listener):
        sock = _connect(listener)
        time.sleep(0.1)
        listener.stop()
        sock.settimeout(2.0)
        try:
            assert sock.recv(16) == b""
        except ConnectionResetError:
            pass
        finally:
            sock.close()

    def test_stop_right_after_connect_closes_connection(self, collector, delivery):
        for _ in range(20):
            lst = BuildEventListener(collector, delivery, host="127.0.0.1", port=0)
            assert lst.start()
            sock = _connect(lst)
            lst.stop()
            sock.settimeout(2.0)
            try:
                assert sock.recv(16) == b""
            except ConnectionResetError:
                pass
            finally:
                sock.close()
            assert not lst._connections

    def test_start_is_idempotent(self, listener, collector):
        assert listener.start() is True
        assert listener.is_listening
        with _connect(listener) as sock:
            sock.sendall(STARTED)
        assert collector.wait_for(1)

    def test_bind_failure_is_reported(self, listener, collector, delivery, caplog):
        host, port = listener.address
        other = BuildEventListener(collector, delivery, host=host, port=port)
        with caplog.at_level("ERROR"):
            assert other.start() is False
        assert not other.is_listening
        assert "failed to bind" in caplog.text

    def test_context_manager(self, collector, delivery):
        with BuildEventListener(collector, delivery, host="127.0.0.1", port=0) as lst:
            assert lst.is_listening
        assert not lst.is_listening


class TestSender:
    def test_send_reaches_listener(self, listener, collector, make_event):
        host, port = listener.address
        sender = EventSender(host, port)
        assert sender.send(make_event(EventKind.SUCCEEDED, progress=1.0)) is True
        assert collector.wait_for(1)
        assert collector.events[0].event == EventKind.SUCCEEDED
        assert collector.events[0].progress == 1.0

    def test_send_without_listener_is_silent(self, make_event):
        with socket.socket() as probe:
            probe.bind(("127.0.0.1", 0))
            free_port = probe.getsockname()[1]
        sender = EventSender("127.0.0.1", free_port, connect_timeout=0.2)
        started = time.monotonic()
        assert sender.send(make_event()) is False
        assert time.monotonic() - started < 1.0

    def test_unencodable_host_is_dropped(self, make_event):
        sender = EventSender("a" * 70, 34345, connect_timeout=0.2)
        assert sender.send(make_event()) is False

    def test_repr(self):
        assert "34345" in repr(EventSender())
