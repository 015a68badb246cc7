"""Identifier generation for catalog records."""

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Optional
from uuid import uuid4


class IdGenerator(ABC):
    """Produces series identifiers that never collide, even across concurrent callers."""

    @abstractmethod
    def new_id(self) -> str:
        pass


class UuidIdGenerator(IdGenerator):
    """Random 128-bit identifiers, hex encoded."""

    def new_id(self) -> str:
        return uuid4().hex


class SequentialIdGenerator(IdGenerator):
    """A process-unique salt followed by a monotonically increasing counter.

    Produces readable ids such as ``1a2b3c4d-1``, ``1a2b3c4d-2``.
    """

    def __init__(self, salt: Optional[str] = None, start: int = 1):
        self.salt = salt if salt is not None else uuid4().hex[:8]
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def new_id(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self.salt}-{value}" if self.salt else str(value)
