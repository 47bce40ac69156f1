from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from typing import Any

from tokenauth.core.logger import sanitize_log_value

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class LoggingEventPublisher:
    """
    Synchronous publisher that logs each event and fans it out to subscribers.

    A failing subscriber is logged and skipped; ``publish`` never raises
    because of one.
    """

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self._subscribers: list[Subscriber] = list(subscribers or [])

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, event: Any) -> None:
        name = type(event).__name__
        payload = asdict(event) if is_dataclass(event) and not isinstance(event, type) else {}
        logger.info(
            "domain.event %s",
            name,
            extra={
                "event": name,
                "user_id": sanitize_log_value(str(payload.get("user_id", ""))),
            },
        )
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("domain.event.subscriber_failed %s", name, extra={"event": name})
