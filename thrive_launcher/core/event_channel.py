"""
Delivers pipeline events from background work to subscribers.

Events published from worker threads are handed to the event loop first, so
subscribers always run on the loop thread and never need their own locking.
"""

import asyncio
import logging
from collections.abc import Callable

from thrive_launcher.models.events import PipelineEvent

log = logging.getLogger(__name__)

Subscriber = Callable[[PipelineEvent], None]


class EventChannel:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Ties the channel to the loop that runs the subscribers."""
        self._loop = loop

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Adds a subscriber and returns a function that removes it again."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: PipelineEvent) -> None:
        """Delivers ``event`` to every subscriber on the calling thread."""
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                log.exception(f"Event subscriber failed on {type(event).__name__}.")

    def publish_threadsafe(self, event: PipelineEvent) -> None:
        """Publishes from any thread by scheduling delivery on the bound loop."""
        if self._loop is None or self._loop.is_closed():
            self.publish(event)
            return
        self._loop.call_soon_threadsafe(self.publish, event)
