from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated JWT.

    ``user_id`` is the token subject and doubles as the User record id
    in the store.
    """

    user_id: str
    roles: frozenset[str]
