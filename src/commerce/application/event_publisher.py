"""Outbound port for domain events.

Handlers publish the events an aggregate returned only after that
aggregate was saved.  Delivery (queues, notifications, audit) is an
external concern; the default publisher just logs.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Iterable

import structlog

from commerce.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class EventPublisher(ABC):

    @abstractmethod
    def publish(self, events: Iterable[DomainEvent]) -> None:
        """Hand events to the outside world.  Must not block on delivery."""


class LoggingEventPublisher(EventPublisher):

    def publish(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            payload = {
                k: v for k, v in dataclasses.asdict(event).items() if k != "occurred_at"
            }
            logger.info("domain_event", event_type=event.name, **payload)
