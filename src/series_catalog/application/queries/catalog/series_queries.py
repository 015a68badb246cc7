"""Series queries."""

from dataclasses import dataclass
from typing import List, Optional

from ...queries.base import Query, QueryHandler
from ...catalog_service import CatalogService
from ....domain.catalog.entities import Series


@dataclass(frozen=True, slots=True, kw_only=True)
class ListSeriesQuery(Query):
    """List every series, optionally only those owned by one user."""

    owner_handle: Optional[str] = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GetSeriesQuery(Query):
    """Fetch a single series by id."""

    series_id: str


class ListSeriesQueryHandler(QueryHandler[ListSeriesQuery, List[Series]]):
    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, query: ListSeriesQuery) -> List[Series]:
        series = self.service.list_series()
        if query.owner_handle:
            series = [item for item in series if item.owner_handle == query.owner_handle]
        return series

    def can_handle(self, query_type: type) -> bool:
        return query_type == ListSeriesQuery


class GetSeriesQueryHandler(QueryHandler[GetSeriesQuery, Series]):
    def __init__(self, service: CatalogService):
        self.service = service

    async def handle(self, query: GetSeriesQuery) -> Series:
        return self.service.get_series(query.series_id).or_else_raise()

    def can_handle(self, query_type: type) -> bool:
        return query_type == GetSeriesQuery
