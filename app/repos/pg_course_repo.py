"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseRow
from app.models.course import Course


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, course_id: str) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def add(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            name=course.name,
            price=course.price,
            students_enrolled=sorted(course.students_enrolled),
        )
        self._session.add(row)
        await self._session.flush()

    async def add_student(self, course_id: str, user_id: str) -> Course | None:
        # Row lock keeps concurrent enrollments from losing each other's update
        stmt = select(CourseRow).where(CourseRow.id == course_id).with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        if user_id not in row.students_enrolled:
            row.students_enrolled = [*row.students_enrolled, user_id]
            await self._session.flush()
        return _row_to_course(row)


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        name=row.name,
        price=row.price,
        students_enrolled=frozenset(row.students_enrolled or ()),
    )
