"""Catalog Context Repository Interfaces.

This module defines the record store interface for the Catalog bounded
context. The store guarantees atomicity and ordering of mutations; domain
rules (unique names, existing records) are enforced by the mutation
functions handed to it.
"""

from abc import ABC, abstractmethod
from typing import Callable

from ..result import Result
from .entities import Collection

Mutation = Callable[[Collection], Result[Collection, Exception]]


class RecordStore(ABC):
    """Durable collection of catalog records with serialized mutations."""

    @abstractmethod
    async def load(self) -> Result[Collection, Exception]:
        """Load the durable collection, creating an empty one if absent."""
        pass

    @abstractmethod
    def snapshot(self) -> Collection:
        """Return a deep copy of the last committed collection."""
        pass

    @abstractmethod
    async def mutate(self, fn: Mutation) -> Result[Collection, Exception]:
        """Apply ``fn`` to a private working copy and commit it on success.

        Mutations are totally ordered; a failed ``fn`` leaves the store
        untouched.
        """
        pass
