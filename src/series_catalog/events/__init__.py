"""
Event System - Domain Events Architecture

This package implements the post-commit notifications of the series catalog.
"""

from .event_bus import EventBus, DomainEvent
from .domain_events import (
    SeriesCreated,
    EpisodeAdded,
    CoverImageUpdated,
    EpisodeDeleted,
    SeriesDeleted,
)

__all__ = [
    # Core event system
    "EventBus",
    "DomainEvent",
    # Domain events
    "SeriesCreated",
    "EpisodeAdded",
    "CoverImageUpdated",
    "EpisodeDeleted",
    "SeriesDeleted",
]
