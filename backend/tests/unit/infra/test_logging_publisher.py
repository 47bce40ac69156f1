from __future__ import annotations

import uuid

from tokenauth.core.clock import utcnow
from tokenauth.infra.events.logging_publisher import LoggingEventPublisher
from tokenauth.services.auth.events import UserRegistered


def _event() -> UserRegistered:
    return UserRegistered(user_id=uuid.uuid4(), email="a@example.com", occurred_at=utcnow())


def test_publish_logs_and_notifies_subscribers(caplog):
    received = []
    publisher = LoggingEventPublisher([received.append])
    event = _event()

    with caplog.at_level("INFO", logger="tokenauth.infra.events.logging_publisher"):
        publisher.publish(event)

    assert received == [event]
    assert "domain.event UserRegistered" in caplog.text


def test_failing_subscriber_does_not_stop_the_others(caplog):
    received = []

    def _broken(event):
        raise RuntimeError("subscriber bug")

    publisher = LoggingEventPublisher([_broken])
    publisher.subscribe(received.append)

    with caplog.at_level("ERROR"):
        publisher.publish(_event())

    assert len(received) == 1
    assert "subscriber_failed" in caplog.text
