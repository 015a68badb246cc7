"""Base classes for CQRS query pattern.

Queries are answered from a fresh record store snapshot on every dispatch,
so a query issued after a commit always observes it.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar
from uuid import uuid4

from ..commands.base import error_type_of

# Type variables for generic query handling
Q = TypeVar("Q", bound="Query")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Query:
    """Base query class with metadata."""

    query_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert query to dictionary for serialization."""
        return {
            "query_id": self.query_id,
            "query_type": self.__class__.__name__,
            "timestamp": self.timestamp.isoformat(),
            **{
                f.name: getattr(self, f.name)
                for f in dataclasses.fields(self)
                if f.name not in {"query_id", "timestamp"}
            }
        }


class QueryHandler(ABC, Generic[Q, R]):
    """Abstract base class for query handlers."""

    @abstractmethod
    async def handle(self, query: Q) -> R:
        """Handle the query and return results."""
        pass

    @abstractmethod
    def can_handle(self, query_type: type) -> bool:
        """Check if this handler can handle the given query type."""
        pass


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[R]):
    """Result wrapper for query responses."""

    data: Optional[R] = None
    success: bool = True
    query_id: str = ""
    message: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    error_type: Optional[str] = None
    execution_time_ms: Optional[float] = None
    total_count: Optional[int] = None


class QueryBus:
    """Mediates queries to appropriate handlers."""

    def __init__(self):
        self._handlers: Dict[type, QueryHandler] = {}
        self._middleware: List[Callable] = []

    def register(self, query_type: type, handler: QueryHandler) -> None:
        """Register a handler for a query type."""
        self._handlers[query_type] = handler

    def register_middleware(self, middleware: Callable) -> None:
        """Register middleware for query processing pipeline."""
        self._middleware.append(middleware)

    async def dispatch(self, query: Query) -> QueryResult:
        """Dispatch a query to its registered handler."""
        query_type = type(query)
        start_time = datetime.utcnow()

        if query_type not in self._handlers:
            return QueryResult(
                success=False,
                query_id=query.query_id,
                errors=[f"No handler registered for query type: {query_type.__name__}"],
                error_type="InternalError",
            )

        handler = self._handlers[query_type]

        try:
            current_handler = handler.handle
            for middleware in reversed(self._middleware):
                current_handler = middleware(current_handler)

            result_data = await current_handler(query)

        except Exception as e:
            execution_time = (datetime.utcnow() - start_time).total_seconds() * 1000
            return QueryResult(
                success=False,
                query_id=query.query_id,
                errors=[str(e)],
                error_type=error_type_of(e),
                execution_time_ms=execution_time,
            )

        execution_time = (datetime.utcnow() - start_time).total_seconds() * 1000
        return QueryResult(
            data=result_data,
            success=True,
            query_id=query.query_id,
            execution_time_ms=execution_time,
            total_count=len(result_data) if isinstance(result_data, list) else None,
        )

    def get_registered_queries(self) -> List[type]:
        """Get list of registered query types."""
        return list(self._handlers.keys())
