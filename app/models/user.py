from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    first_name: str = ""
    courses: frozenset[str] = frozenset()  # enrolled course ids

    @staticmethod
    def new(*, id: str, email: str, first_name: str = "") -> User:
        # Normalize email here so every repo stores the same form
        return User(id=id, email=email.strip().lower(), first_name=first_name)
