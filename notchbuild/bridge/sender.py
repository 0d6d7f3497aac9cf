"""Fire-and-forget event sender used by the build wrapper.

Each event travels on its own short-lived connection: connect, write one
line, close.  Nothing is retried or acknowledged, and no failure ever
propagates to the caller.
"""

from __future__ import annotations

import logging
import socket

from notchbuild.config import DEFAULT_HOST, DEFAULT_PORT
from notchbuild.models.events import BuildEvent

logger = logging.getLogger(__name__)


class EventSender:
    """Sends ``BuildEvent`` lines to the listener endpoint.

    Parameters
    ----------
    host, port:
        Listener address.
    connect_timeout:
        Upper bound on connect and write, in seconds.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        connect_timeout: float = 0.5,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = connect_timeout

    @property
    def address(self) -> tuple[str, int]:
        return (self._host, self._port)

    def send(self, event: BuildEvent) -> bool:
        """Write one event.  Returns ``False`` if it could not be delivered."""
        try:
            with socket.create_connection(self.address, timeout=self._timeout) as sock:
                sock.sendall(event.to_wire())
        except (OSError, UnicodeError) as exc:
            # UnicodeError: host name the IDNA codec cannot encode.
            logger.debug(
                "EventSender: dropped %s for %s:%d (%s).",
                event.event.value,
                self._host,
                self._port,
                exc,
            )
            return False
        return True

    def __repr__(self) -> str:
        return f"EventSender(host={self._host!r}, port={self._port})"
