"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between rows and dataclasses; nothing outside app/repos
touches a Row class.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    students_enrolled: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    courses: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )


class CourseProgressRow(Base):
    __tablename__ = "course_progress"
    # Deliberately not unique on (course_id, user_id); see DESIGN.md
    __table_args__ = (Index("ix_course_progress_course_user", "course_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    course_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("courses.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False
    )
    completed_videos: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )


class ProcessedPaymentRow(Base):
    __tablename__ = "processed_payments"

    payment_intent_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_ids: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )
    processed_at: Mapped[int] = mapped_column(Integer, nullable=False)
