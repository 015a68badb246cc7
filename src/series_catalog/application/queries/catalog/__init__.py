"""Catalog queries."""

from .series_queries import (
    GetSeriesQuery,
    GetSeriesQueryHandler,
    ListSeriesQuery,
    ListSeriesQueryHandler,
)

__all__ = [
    "GetSeriesQuery",
    "GetSeriesQueryHandler",
    "ListSeriesQuery",
    "ListSeriesQueryHandler",
]
