"""Identity and access-control collaborators.

The catalog never decides on its own who may delete records; it asks an
``AccessGate``. Two policies are provided because deployments disagree on
what "administrator" means:

* ``AdminFlagAccessGate`` - any user whose record carries ``is_admin``.
  Several administrators may exist.
* ``FixedAdminAccessGate`` - exactly one configured user name.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol

from .result import AuthError, Result

logger = logging.getLogger(__name__)


class Action(Enum):
    """Actions that go through the access gate."""
    DELETE_SERIES = "delete_series"
    DELETE_EPISODE = "delete_episode"


@dataclass(frozen=True, slots=True)
class UserRecord:
    """A known user and whether they carry the administrator flag."""
    handle: str
    is_admin: bool = False


class IdentityProvider(Protocol):
    """Turns credentials or tokens into a subject handle."""

    def authenticate(self, credentials: Dict[str, Any]) -> Result[str, AuthError]:
        ...

    def verify_token(self, token: str) -> Result[str, AuthError]:
        ...


class AccessGate(ABC):
    """Decides whether a subject may perform an action on a record."""

    @abstractmethod
    def is_authorized(self, subject_handle: str, action: Action, record: Any) -> bool:
        pass


class AdminFlagAccessGate(AccessGate):
    """Authorizes users whose record has the administrator flag set."""

    def __init__(self, users: Iterable[UserRecord] = ()):
        self._users: Dict[str, UserRecord] = {user.handle: user for user in users}

    def add_user(self, user: UserRecord) -> None:
        self._users[user.handle] = user

    def is_authorized(self, subject_handle: str, action: Action, record: Any) -> bool:
        user = self._users.get(subject_handle)
        allowed = bool(user and user.is_admin)
        if not allowed:
            logger.info(f"Denied {action.value} to {subject_handle!r}: not an administrator")
        return allowed


class FixedAdminAccessGate(AccessGate):
    """Authorizes a single designated administrator by name."""

    def __init__(self, admin_handle: str = "admin"):
        self.admin_handle = admin_handle

    def is_authorized(self, subject_handle: str, action: Action, record: Any) -> bool:
        allowed = subject_handle == self.admin_handle
        if not allowed:
            logger.info(f"Denied {action.value} to {subject_handle!r}: only {self.admin_handle!r} may do this")
        return allowed


def build_access_gate(policy: str, admins: Iterable[str] = (),
                      admin_handle: Optional[str] = None) -> AccessGate:
    """Create the gate for a configured policy name."""
    if policy == "admin_flag":
        return AdminFlagAccessGate(UserRecord(handle, is_admin=True) for handle in admins)
    if policy == "fixed_admin":
        return FixedAdminAccessGate(admin_handle or "admin")
    raise ValueError(f"Unknown access policy: {policy!r}")
