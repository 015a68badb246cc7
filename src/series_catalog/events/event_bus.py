"""
Event Bus - Event-driven communication system.

This module provides a lightweight in-process event bus. Catalog events are
published only after the change they describe has been committed; a failing
subscriber is logged and never affects the operation that published.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from uuid import uuid4

logger = logging.getLogger(__name__)

T = TypeVar('T', bound='DomainEvent')


@dataclass
class DomainEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: f"evt_{uuid4().hex}")
    timestamp: datetime = field(default_factory=datetime.now)
    aggregate_id: Optional[str] = None
    aggregate_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.aggregate_type and self.aggregate_id:
            self.aggregate_type = "Series"

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.__class__.__name__,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "metadata": self.metadata,
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        """Get event-specific data for serialization."""
        return {}


class EventBus:
    """
    Central event bus for publishing and subscribing to domain events.

    Handlers may be plain functions or coroutines; handlers registered for a
    parent event class also receive its subclasses.
    """

    def __init__(self, max_events_in_memory: int = 1000):
        self._handlers: Dict[Type[DomainEvent], List[Callable[[Any], Any]]] = {}
        self._event_store: List[DomainEvent] = []
        self._max_events_in_memory = max_events_in_memory

    def subscribe(self, event_type: Type[T], handler: Callable[[T], Any]) -> None:
        """Subscribe to events of a specific type."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        if event_type in self._handlers:
            self._handlers[event_type] = [h for h in self._handlers[event_type] if h != handler]

    async def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        self._event_store.append(event)
        if len(self._event_store) > self._max_events_in_memory:
            self._event_store.pop(0)

        handlers = []
        for event_type in type(event).__mro__:
            if isinstance(event_type, type) and issubclass(event_type, DomainEvent):
                handlers.extend(self._handlers.get(event_type, []))

        if handlers:
            await asyncio.gather(*(self._safe_handle(handler, event) for handler in handlers))

    def get_events(
        self,
        aggregate_id: Optional[str] = None,
        event_type: Optional[Type[DomainEvent]] = None
    ) -> List[DomainEvent]:
        """Get events from the store with optional filtering."""
        filtered_events = self._event_store

        if aggregate_id:
            filtered_events = [e for e in filtered_events if e.aggregate_id == aggregate_id]

        if event_type:
            filtered_events = [e for e in filtered_events if isinstance(e, event_type)]

        return list(filtered_events)

    async def _safe_handle(self, handler: Callable, event: DomainEvent) -> None:
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Error in event handler {handler!r} for {type(event).__name__}: {e}")

    def clear(self) -> None:
        """Clear all handlers and events."""
        self._handlers.clear()
        self._event_store.clear()
