"""Newline framing and event decoding for the loopback channel.

The byte stream carries one JSON object per line.  Reads may split a
message across any number of chunks or carry several messages at once;
``LineFramer`` reassembles them.
"""

from __future__ import annotations

import json

from pydantic import ValidationError

from notchbuild.models.events import BuildEvent

NEWLINE = b"\n"


class EventDecodeError(ValueError):
    """Raised when a framed message is not a valid build event."""


class LineFramer:
    """Accumulates bytes and yields complete newline-delimited messages.

    Partial data is retained between ``feed`` calls without limit.
    Empty messages (blank lines) are skipped.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received after the last newline."""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[bytes]:
        """Append ``chunk`` and drain every complete message, in order."""
        self._buffer.extend(chunk)
        messages: list[bytes] = []
        while True:
            index = self._buffer.find(NEWLINE)
            if index < 0:
                break
            packet = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            if packet:
                messages.append(packet)
        return messages


def decode_event(raw: bytes | str) -> BuildEvent:
    """Decode one framed message into a ``BuildEvent``.

    Raises
    ------
    EventDecodeError
        If the message is not UTF-8, not JSON, not an object, or fails
        model validation.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventDecodeError(f"Message is not UTF-8: {exc}") from exc

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise EventDecodeError(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise EventDecodeError(
            f"Event must be a JSON object, got {type(data).__name__}"
        )

    try:
        return BuildEvent.model_validate(data)
    except ValidationError as exc:
        raise EventDecodeError(f"Event validation failed: {exc}") from exc
