from __future__ import annotations

from typing import Protocol

from app.models.progress import CourseProgress


class ProgressRepo(Protocol):
    async def create(self, progress: CourseProgress) -> CourseProgress: ...
    async def list_for(self, *, course_id: str, user_id: str) -> list[CourseProgress]: ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._records: list[CourseProgress] = []

    async def create(self, progress: CourseProgress) -> CourseProgress:
        # No (course_id, user_id) uniqueness check, same as the SQL table
        self._records.append(progress)
        return progress

    async def list_for(self, *, course_id: str, user_id: str) -> list[CourseProgress]:
        return [
            p
            for p in self._records
            if p.course_id == course_id and p.user_id == user_id
        ]
