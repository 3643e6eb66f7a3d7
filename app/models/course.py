from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    name: str
    price: Decimal  # major currency units, e.g. Decimal("20.00")
    students_enrolled: frozenset[str] = frozenset()

    @staticmethod
    def new(*, id: str, name: str, price: Decimal | str | int) -> Course:
        return Course(id=id, name=name, price=Decimal(str(price)))
