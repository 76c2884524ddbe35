"""Domain models for the user service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as an RFC 3339 UTC timestamp with second precision."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class User:
    """Represents a user record held by a store."""

    id: int
    name: str
    email: str
    created_at: datetime

    def with_profile(self, name: str, email: str) -> "User":
        return replace(self, name=name, email=email)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created": format_timestamp(self.created_at),
        }


__all__ = ["User", "format_timestamp"]
