"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseProgressRow
from app.models.progress import CourseProgress


class PgProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, progress: CourseProgress) -> CourseProgress:
        row = CourseProgressRow(
            id=progress.id,
            course_id=progress.course_id,
            user_id=progress.user_id,
            completed_videos=list(progress.completed_videos),
        )
        self._session.add(row)
        await self._session.flush()
        return progress

    async def list_for(self, *, course_id: str, user_id: str) -> list[CourseProgress]:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.course_id == course_id,
            CourseProgressRow.user_id == user_id,
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            CourseProgress(
                id=r.id,
                course_id=r.course_id,
                user_id=r.user_id,
                completed_videos=tuple(r.completed_videos or ()),
            )
            for r in rows
        ]
