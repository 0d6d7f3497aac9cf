"""Build lifecycle state machine.

Enforces:
- Guarded transitions only (TRANSITION_RULES table)
- Unsatisfied guards are silent no-ops
- Change notifications only when the state actually changes
- A one-shot auto-idle after SUCCESS, cancelled by any later change

All methods must be called from the scheduler's thread (the delivery
context); the machine itself does no locking.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from notchbuild.core.delivery import ScheduledCall, Scheduler
from notchbuild.models.states import TRANSITION_RULES, BuildState, StateRequest

logger = logging.getLogger(__name__)

StateObserver = Callable[[BuildState], None]

DEFAULT_AUTO_IDLE_DELAY = 2.0


class Subscription:
    """Registration handle returned by ``BuildStateMachine.subscribe``."""

    def __init__(self, machine: BuildStateMachine, observer: StateObserver) -> None:
        self._machine = machine
        self._observer = observer

    def close(self) -> None:
        self._machine.unsubscribe(self._observer)


class BuildStateMachine:
    """Lifecycle state machine with a timed return to IDLE after success.

    Parameters
    ----------
    scheduler:
        Schedules the auto-idle action.  In production this is the same
        ``DeliveryQueue`` that delivers events, so a late timer can never
        interleave with a fresh request.
    auto_idle_delay:
        Seconds spent in SUCCESS before returning to IDLE.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        auto_idle_delay: float = DEFAULT_AUTO_IDLE_DELAY,
    ) -> None:
        self._scheduler = scheduler
        self._auto_idle_delay = auto_idle_delay
        self._state = BuildState.IDLE
        self._auto_idle: ScheduledCall | None = None
        self._observers: list[StateObserver] = []

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def auto_idle_pending(self) -> bool:
        """Whether an uncancelled auto-idle action is scheduled."""
        return self._auto_idle is not None and not self._auto_idle.cancelled

    def subscribe(self, observer: StateObserver) -> Subscription:
        """Register ``observer`` for state-change notifications."""
        self._observers.append(observer)
        return Subscription(self, observer)

    def unsubscribe(self, observer: StateObserver) -> None:
        self._observers = [o for o in self._observers if o is not observer]

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def send(self, request: StateRequest) -> bool:
        """Apply a transition request.

        Returns ``True`` if the guard was satisfied (even when the state
        did not change), ``False`` if the request was ignored.
        """
        rule = TRANSITION_RULES[request]
        if rule.allowed_from is not None and self._state not in rule.allowed_from:
            logger.debug(
                "Ignoring %s while %s.", request.value, self._state.value
            )
            return False

        if rule.cancels_auto_idle or rule.schedules_auto_idle:
            self._cancel_auto_idle()
        self._set_state(rule.target)
        if rule.schedules_auto_idle:
            self._auto_idle = self._scheduler.call_later(
                self._auto_idle_delay, self._auto_idle_fired
            )
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel_auto_idle(self) -> None:
        if self._auto_idle is not None:
            self._auto_idle.cancel()
            self._auto_idle = None

    def _auto_idle_fired(self) -> None:
        self._auto_idle = None
        logger.debug("Auto-idle after success.")
        self._set_state(BuildState.IDLE)

    def _set_state(self, new_state: BuildState) -> None:
        if new_state == self._state:
            return
        old, self._state = self._state, new_state
        if self._auto_idle is not None and new_state != BuildState.SUCCESS:
            # Any change away from SUCCESS invalidates the pending timer.
            self._cancel_auto_idle()
        logger.debug("State %s -> %s", old.value, new_state.value)
        for observer in list(self._observers):
            observer(new_state)
