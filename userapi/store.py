"""Storage capability shared by the SQLite and in-memory user stores."""
from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

from .models import User


class StoreError(Exception):
    """Base class for failures raised by a user store."""


class ConfigError(StoreError):
    """Required configuration is missing or invalid."""


class StoreConnectionError(StoreError):
    """The backing store could not be reached."""


class NotFoundError(StoreError):
    """The referenced user does not exist."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class ConstraintError(StoreError):
    """A write violated a constraint enforced by the store (e.g. duplicate email)."""


class ValidationError(StoreError, ValueError):
    """A record failed the presence checks required for storage."""


SAMPLE_USERS: Tuple[Tuple[str, str], ...] = (
    ("John Doe", "john@example.com"),
    ("Jane Smith", "jane@example.com"),
    ("Bob Johnson", "bob@example.com"),
)


def validate_user_fields(name: str, email: str) -> None:
    if not name or not email:
        raise ValidationError("Name and email are required")


class UserStore(Protocol):
    def list_users(self) -> List[User]:
        ...

    def get_user(self, user_id: int) -> User:
        ...

    def create_user(self, name: str, email: str) -> User:
        ...

    def update_user(self, user_id: int, name: str, email: str) -> User:
        ...

    def delete_user(self, user_id: int) -> None:
        ...

    def seed_if_empty(self) -> int:
        ...

    def connectivity(self) -> Optional[str]:
        """Return ``ok``/``error``/``disconnected``, or ``None`` when there is nothing to probe."""
        ...


__all__ = [
    "ConfigError",
    "ConstraintError",
    "NotFoundError",
    "SAMPLE_USERS",
    "StoreConnectionError",
    "StoreError",
    "UserStore",
    "ValidationError",
    "validate_user_fields",
]
