"""Loopback TCP listener for newline-delimited build events.

Bridge boundary
---------------
One accept thread plus one reader thread per connection.  Readers frame
and decode messages and hand each decoded ``BuildEvent`` to a single
callback through the ``DeliveryQueue``, so the callback is never invoked
concurrently.  Undecodable messages are dropped silently.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from collections.abc import Callable
from typing import Any

from notchbuild.bridge.framing import EventDecodeError, LineFramer, decode_event
from notchbuild.config import DEFAULT_HOST, DEFAULT_PORT
from notchbuild.core.delivery import DeliveryQueue
from notchbuild.models.events import BuildEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[BuildEvent], None]

# accept() wakes this often to notice stop()
_ACCEPT_POLL_SECONDS = 0.25


class BuildEventListener:
    """Accepts event connections and delivers decoded events.

    Parameters
    ----------
    callback:
        Receives every decoded event, on the delivery thread.
    delivery:
        The single-consumer queue the callback runs on.
    host, port:
        Bind address.  Port ``0`` binds an ephemeral port; see ``address``.
    read_chunk_size:
        Maximum bytes per ``recv``.
    """

    def __init__(
        self,
        callback: EventCallback,
        delivery: DeliveryQueue,
        *,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        read_chunk_size: int = 4096,
    ) -> None:
        self._callback = callback
        self._delivery = delivery
        self._host = host
        self._port = port
        self._chunk_size = read_chunk_size
        self._lock = threading.Lock()
        self._server: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._connections: set[socket.socket] = set()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    @property
    def address(self) -> tuple[str, int] | None:
        """The bound ``(host, port)``, or ``None`` when stopped."""
        server = self._server
        if server is None:
            return None
        host, port = server.getsockname()[:2]
        return (host, port)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Bind and start accepting.  Stops any previous endpoint first.

        Returns ``False`` (after logging) if the endpoint cannot be bound.
        """
        self.stop()
        try:
            # create_server sets SO_REUSEADDR on POSIX.
            server = socket.create_server((self._host, self._port))
        except OSError:
            logger.exception(
                "BuildEventListener: failed to bind %s:%d.", self._host, self._port
            )
            return False

        server.settimeout(_ACCEPT_POLL_SECONDS)
        with self._lock:
            self._server = server
        self._accept_thread = threading.Thread(
            target=self._accept_loop,
            args=(server,),
            name="notchbuild-accept",
            daemon=True,
        )
        self._accept_thread.start()
        host, port = self.address or (self._host, self._port)
        logger.info("BuildEventListener: listening on %s:%d.", host, port)
        return True

    def stop(self) -> None:
        """Close the endpoint and every open connection."""
        with self._lock:
            server, self._server = self._server, None
            if server is None:
                return
            connections = list(self._connections)
            self._connections.clear()
        server.close()
        for conn in connections:
            _shutdown(conn)

        thread, self._accept_thread = self._accept_thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(1.0)
        logger.info("BuildEventListener: stopped.")

    def __enter__(self) -> BuildEventListener:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Socket loops
    # ------------------------------------------------------------------

    def _accept_loop(self, server: socket.socket) -> None:
        while True:
            try:
                conn, peer = server.accept()
            except TimeoutError:
                if self._server is not server:
                    return
                continue
            except OSError:
                # Server socket closed by stop().
                return
            with self._lock:
                current = self._server is server
                if current:
                    self._connections.add(conn)
            if not current:
                _shutdown(conn)
                return
            logger.debug("BuildEventListener: connection from %s.", peer)
            threading.Thread(
                target=self._read_loop,
                args=(conn,),
                name="notchbuild-reader",
                daemon=True,
            ).start()

    def _read_loop(self, conn: socket.socket) -> None:
        framer = LineFramer()
        try:
            while True:
                try:
                    chunk = conn.recv(self._chunk_size)
                except OSError:
                    return
                if not chunk:
                    return
                for message in framer.feed(chunk):
                    self._dispatch(message)
        finally:
            with self._lock:
                self._connections.discard(conn)
            _shutdown(conn)

    def _dispatch(self, message: bytes) -> None:
        try:
            event = decode_event(message)
        except EventDecodeError as exc:
            logger.debug("BuildEventListener: dropped message (%s).", exc)
            return
        self._delivery.submit(self._callback, event)

    def __repr__(self) -> str:
        state = "listening" if self.is_listening else "stopped"
        return f"BuildEventListener(host={self._host!r}, port={self._port}, {state})"


def _shutdown(conn: socket.socket) -> None:
    with contextlib.suppress(OSError):
        conn.shutdown(socket.SHUT_RDWR)
    conn.close()
