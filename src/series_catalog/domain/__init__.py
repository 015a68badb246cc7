"""
Domain Layer - Series Catalog

This module contains the domain layer: the catalog bounded context, the
Result pattern and error taxonomy, identifier generation and access control.
"""

from .result import (
    Result,
    Success,
    Failure,
    DomainError,
    ValidationError,
    NotFoundError,
    ConflictError,
    ForbiddenError,
    AuthError,
)
from .identity import IdGenerator, UuidIdGenerator, SequentialIdGenerator
from .access import (
    Action,
    AccessGate,
    AdminFlagAccessGate,
    FixedAdminAccessGate,
    IdentityProvider,
    UserRecord,
)

__all__ = [
    # Result pattern
    "Result",
    "Success",
    "Failure",
    # Errors
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "AuthError",
    # Identity
    "IdGenerator",
    "UuidIdGenerator",
    "SequentialIdGenerator",
    # Access control
    "Action",
    "AccessGate",
    "AdminFlagAccessGate",
    "FixedAdminAccessGate",
    "IdentityProvider",
    "UserRecord",
]
