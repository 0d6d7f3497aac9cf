"""Indicator — wires the listener-side components together.

    BuildEventListener -> DeliveryQueue -> Coordinator -> BuildStateMachine
                                                 |
                                                 v
                                      presenter.update(state, progress)

The delivery queue is both the event delivery context and the scheduler
for the auto-idle timer, so every state mutation happens on one thread.
Interactive requests (``send``, ``dismiss``) are queued onto the same
thread.
"""

from __future__ import annotations

import logging
from typing import Any

from notchbuild.bridge.listener import BuildEventListener
from notchbuild.config import NotchSettings
from notchbuild.core.coordinator import Coordinator, Presenter
from notchbuild.core.delivery import DeliveryQueue
from notchbuild.core.state_machine import BuildStateMachine
from notchbuild.models.states import StateRequest

logger = logging.getLogger(__name__)


class Indicator:
    """The long-lived listener side of notch-build.

    Parameters
    ----------
    presenter:
        The presentation collaborator.
    settings:
        Endpoint and timing settings.  Defaults to ``NotchSettings()``.
    """

    def __init__(
        self,
        presenter: Presenter,
        settings: NotchSettings | None = None,
    ) -> None:
        self._settings = settings or NotchSettings()
        self.delivery = DeliveryQueue()
        self.machine = BuildStateMachine(
            self.delivery, auto_idle_delay=self._settings.auto_idle_delay
        )
        self.coordinator = Coordinator(self.machine, presenter)
        self.listener = BuildEventListener(
            self.coordinator.handle_event,
            self.delivery,
            host=self._settings.host,
            port=self._settings.port,
            read_chunk_size=self._settings.read_chunk_size,
        )

    @property
    def settings(self) -> NotchSettings:
        return self._settings

    @property
    def address(self) -> tuple[str, int] | None:
        return self.listener.address

    def start(self) -> bool:
        """Start delivery and listening.  Returns ``False`` if binding failed.

        A bind failure leaves delivery running, so interactive requests
        still work without the network feature.
        """
        self.delivery.start()
        return self.listener.start()

    def stop(self) -> None:
        self.listener.stop()
        self.delivery.stop()
        self.coordinator.close()

    def send(self, request: StateRequest) -> None:
        """Queue an interactive transition request."""
        self.delivery.submit(self.coordinator.send, request)

    def dismiss(self) -> None:
        """Queue a dismiss (progress 0, reset, present IDLE)."""
        self.delivery.submit(self.coordinator.dismiss)

    def __enter__(self) -> Indicator:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
