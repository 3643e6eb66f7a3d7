"""PostgreSQL implementation of ProcessedPaymentRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import ProcessedPaymentRow
from app.models.payment import ProcessedPayment


class PgProcessedPaymentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def claim(self, record: ProcessedPayment) -> bool:
        # ON CONFLICT DO NOTHING: the primary key decides the race, and a
        # losing insert leaves the transaction usable.
        stmt = (
            insert(ProcessedPaymentRow)
            .values(
                payment_intent_id=record.payment_intent_id,
                user_id=record.user_id,
                course_ids=list(record.course_ids),
                processed_at=record.processed_at,
            )
            .on_conflict_do_nothing(index_elements=["payment_intent_id"])
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def get(self, payment_intent_id: str) -> ProcessedPayment | None:
        stmt = select(ProcessedPaymentRow).where(
            ProcessedPaymentRow.payment_intent_id == payment_intent_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return ProcessedPayment(
            payment_intent_id=row.payment_intent_id,
            user_id=row.user_id,
            course_ids=tuple(row.course_ids or ()),
            processed_at=row.processed_at,
        )
