from __future__ import annotations

from typing import Protocol

from app.models.payment import ProcessedPayment


class ProcessedPaymentRepo(Protocol):
    async def claim(self, record: ProcessedPayment) -> bool: ...
    async def get(self, payment_intent_id: str) -> ProcessedPayment | None: ...


class InMemoryProcessedPaymentRepo:
    """Idempotency ledger for verified payments.

    ``claim`` is check-and-insert with no await in between, so it is
    atomic within one event loop.
    """

    def __init__(self) -> None:
        self._by_intent: dict[str, ProcessedPayment] = {}

    async def claim(self, record: ProcessedPayment) -> bool:
        if record.payment_intent_id in self._by_intent:
            return False
        self._by_intent[record.payment_intent_id] = record
        return True

    async def get(self, payment_intent_id: str) -> ProcessedPayment | None:
        return self._by_intent.get(payment_intent_id)
