"""Sync progress events and the bus that broadcasts them."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

Stage = Literal["banks", "accounts", "transactions"]
Phase = Literal["start", "progress", "complete"]


@dataclass(frozen=True)
class SyncProgress:
    """One step of the banks -> accounts -> transactions pipeline."""

    stage: Stage
    phase: Phase
    total_units: int | None = None
    completed_units: int | None = None

    def describe(self) -> str:
        if self.total_units is None:
            return f"{self.stage}: {self.phase}"
        return f"{self.stage}: {self.phase} ({self.completed_units or 0}/{self.total_units})"


ProgressListener = Callable[[SyncProgress], None]


class ProgressBus:
    """Broadcasts SyncProgress events to subscribed listeners.

    Events are ephemeral: nothing is retained after delivery. A listener that
    raises is logged and does not stop delivery to the others or the sync.
    """

    def __init__(self) -> None:
        self._listeners: list[ProgressListener] = []

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a listener and return a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: SyncProgress) -> None:
        logger.debug(f"Sync progress: {event.describe()}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Progress listener failed on {event.describe()}")
