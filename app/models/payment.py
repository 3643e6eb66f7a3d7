from __future__ import annotations

from dataclasses import dataclass, field

SUCCEEDED = "succeeded"


@dataclass(frozen=True, slots=True)
class PaymentIntent:
    """Gateway-side charge attempt, as seen by this service."""

    id: str
    client_secret: str
    amount: int  # minor units (cents)
    currency: str
    status: str  # requires_payment_method|requires_confirmation|processing|succeeded|canceled|...
    # Set at creation: user_id and comma-joined course_ids
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


@dataclass(frozen=True, slots=True)
class ProcessedPayment:
    """Ledger entry keyed by payment intent id.

    Written before enrollment runs; a second verification of the same
    intent finds it and skips enrollment.
    """

    payment_intent_id: str
    user_id: str
    course_ids: tuple[str, ...]
    processed_at: int


@dataclass(frozen=True, slots=True)
class EnrollmentResult:
    course_id: str
    enrolled: bool
    reason: str | None = None
    email_queued: bool = False


@dataclass(frozen=True, slots=True)
class VerificationResult:
    verified: bool
    message: str
    already_processed: bool = False
    enrollments: list[EnrollmentResult] = field(default_factory=list)
