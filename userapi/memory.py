"""In-memory user collection used when no database is configured."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .models import User
from .store import SAMPLE_USERS, NotFoundError, validate_user_fields


class MemoryStore:
    """Ordered, lock-protected list of users with a monotonically increasing id counter.

    Email addresses are not required to be unique here.
    """

    def __init__(self, users: Iterable[User] = ()) -> None:
        self._users: List[User] = sorted(users, key=lambda user: user.id)
        self._next_id = max((user.id for user in self._users), default=0) + 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def list_users(self) -> List[User]:
        with self._lock:
            return list(self._users)

    def get_user(self, user_id: int) -> User:
        with self._lock:
            _, user = self._locate(user_id)
            return user

    def create_user(self, name: str, email: str) -> User:
        validate_user_fields(name, email)
        with self._lock:
            user = User(id=self._next_id, name=name, email=email, created_at=self._now())
            self._next_id += 1
            self._users.append(user)
            return user

    def update_user(self, user_id: int, name: str, email: str) -> User:
        validate_user_fields(name, email)
        with self._lock:
            index, existing = self._locate(user_id)
            updated = existing.with_profile(name, email)
            self._users[index] = updated
            return updated

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            index, _ = self._locate(user_id)
            del self._users[index]

    def seed_if_empty(self) -> int:
        with self._lock:
            if self._users:
                return 0
            for name, email in SAMPLE_USERS:
                self._users.append(User(id=self._next_id, name=name, email=email, created_at=self._now()))
                self._next_id += 1
            return len(SAMPLE_USERS)

    def connectivity(self) -> Optional[str]:
        return None

    def _locate(self, user_id: int) -> Tuple[int, User]:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index, user
        raise NotFoundError(user_id)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["MemoryStore"]
