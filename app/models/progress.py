from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Per-learner progress through one course.

    Created empty at enrollment; completed video ids are appended as the
    learner watches lessons.  The store does not enforce one record per
    (course_id, user_id).
    """

    id: UUID
    course_id: str
    user_id: str
    completed_videos: tuple[str, ...] = ()

    @staticmethod
    def new(*, course_id: str, user_id: str) -> CourseProgress:
        return CourseProgress(id=uuid4(), course_id=course_id, user_id=user_id)
