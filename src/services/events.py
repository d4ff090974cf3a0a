"""Publish/subscribe channel for pipeline lifecycle notifications.

The pipeline reports progress only through these events plus its final
result or exception. Dispatch is synchronous: emit() calls every handler
currently subscribed to the event, in subscription order, before returning.
A handler that raises is logged and skipped; later handlers still run.
Events emitted with no subscribers are dropped.
"""

from enum import Enum
from typing import Any, Callable, Optional

from src.utils.logger import logger


class AIEvent(str, Enum):
    RECIPE_PROMPT_START = "recipe_prompt_start"
    RECIPE_PROMPT_COMPLETE = "recipe_prompt_complete"
    RECIPE_GENERATION_START = "recipe_generation_start"
    RECIPE_GENERATION_COMPLETE = "recipe_generation_complete"
    IMAGE_PROMPT_START = "image_prompt_start"
    IMAGE_PROMPT_COMPLETE = "image_prompt_complete"
    IMAGE_GENERATION_START = "image_generation_start"
    IMAGE_GENERATION_COMPLETE = "image_generation_complete"
    PROCESS_COMPLETE = "process_complete"
    ERROR = "error"


EventHandler = Callable[[Optional[Any]], None]


class EventBus:
    """In-process event bus keyed by AIEvent."""

    def __init__(self) -> None:
        self._listeners: dict[AIEvent, list[EventHandler]] = {}

    def subscribe(self, event: AIEvent, handler: EventHandler) -> Callable[[], None]:
        """Register `handler` for `event`.

        Returns:
            An unsubscribe callable. Calling it more than once is harmless.
        """
        self._listeners.setdefault(event, []).append(handler)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed:
                return
            subscribed = False
            handlers = self._listeners.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: AIEvent, payload: Optional[Any] = None) -> None:
        """Deliver `payload` to every handler of `event`.

        Iterates over a snapshot so handlers may subscribe or unsubscribe
        while the event is being dispatched.
        """
        logger.debug(f"Event emitted: {event.value} {payload if payload is not None else ''}".rstrip())
        for handler in list(self._listeners.get(event, ())):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Event handler for '{event.value}' failed: {e}", exc_info=True)

    def subscriber_count(self, event: AIEvent) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        """Drop every subscriber."""
        self._listeners.clear()


# Process-wide default bus. Services receive a bus explicitly; this instance is
# what initialize_services() hands out when the caller does not supply one.
event_bus = EventBus()
