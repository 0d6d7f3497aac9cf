"""Loopback channel between the build wrapper and the indicator process.

- ``framing``  — newline framing and ``BuildEvent`` decoding
- ``sender``   — fire-and-forget per-event writes (wrapper side)
- ``listener`` — threaded accept/read loops (indicator side)
"""

from notchbuild.bridge.framing import EventDecodeError, LineFramer, decode_event
from notchbuild.bridge.listener import BuildEventListener
from notchbuild.bridge.sender import EventSender

__all__ = [
    "BuildEventListener",
    "EventDecodeError",
    "EventSender",
    "LineFramer",
    "decode_event",
]
