from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from app.models.course import Course


class CourseRepo(Protocol):
    async def get_by_id(self, course_id: str) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def add_student(self, course_id: str, user_id: str) -> Course | None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Course] = {}

    async def get_by_id(self, course_id: str) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course

    async def add_student(self, course_id: str, user_id: str) -> Course | None:
        """Set-add ``user_id`` to the enrolled students; returns the updated course."""
        c = self._by_id.get(course_id)
        if c is None:
            return None

        updated = replace(c, students_enrolled=c.students_enrolled | {user_id})
        self._by_id[course_id] = updated
        return updated
