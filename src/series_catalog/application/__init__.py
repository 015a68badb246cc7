"""Application layer - catalog orchestration and CQRS surface."""

from .catalog_service import CatalogService, Outcome
from .commands import Command, CommandHandler, CommandBus, CommandResult
from .queries import Query, QueryHandler, QueryBus, QueryResult

__all__ = [
    "CatalogService",
    "Outcome",
    "Command",
    "CommandHandler",
    "CommandBus",
    "CommandResult",
    "Query",
    "QueryHandler",
    "QueryBus",
    "QueryResult",
]
