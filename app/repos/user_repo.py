from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from app.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def add_course(self, user_id: str, course_id: str) -> User | None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[user.id] = user

    async def add_course(self, user_id: str, course_id: str) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None

        updated = replace(u, courses=u.courses | {course_id})
        self._by_id[user_id] = updated
        return updated
