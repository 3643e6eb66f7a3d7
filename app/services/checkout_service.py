"""Course checkout: quote, payment intent, verification, enrollment.

Flow:
  POST /v1/payments/capture -> quote -> gateway.create_intent -> client_secret
  (client completes the payment with the gateway out-of-band)
  POST /v1/payments/verify  -> already in the processed-payment ledger? -> done
                            -> gateway.confirm_intent
                            -> status == succeeded?
                               -> intent metadata names this user and these courses?
                               -> claim intent id in the processed-payment ledger
                               -> enroll_students (best-effort, per course)
                               -> queue one confirmation email per enrolled course

Pricing is fail-fast: the first unknown course aborts the quote and the
gateway is never called.  Enrollment is best-effort: a failing course is
logged and reported in the results while the rest of the batch carries
on.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager, nullcontext
from decimal import ROUND_HALF_UP, Decimal

from app.core.errors import GatewayError, InvalidRequest, NotFound, UpstreamLookupError
from app.core.metrics import (
    ENROLLMENT_EMAILS,
    ENROLLMENTS,
    PAYMENT_INTENTS_CREATED,
    PAYMENT_VERIFICATIONS,
)
from app.mail.templates import course_enrollment_email, course_enrollment_subject
from app.models.course import Course
from app.models.payment import (
    EnrollmentResult,
    PaymentIntent,
    ProcessedPayment,
    VerificationResult,
)
from app.models.progress import CourseProgress
from app.models.user import User
from app.repos.course_repo import CourseRepo
from app.repos.payment_repo import ProcessedPaymentRepo
from app.repos.progress_repo import ProgressRepo
from app.repos.user_repo import UserRepo
from app.services.payment_gateway import PaymentGateway
from app.services.task_queue import ENROLLMENT_EMAIL_QUEUE, TaskQueue

logger = logging.getLogger(__name__)

Savepoint = Callable[[], AbstractAsyncContextManager]


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def _intent_covers(intent: PaymentIntent, user_id: str, course_ids: Sequence[str]) -> bool:
    """True when the intent was created for this user and exactly these courses."""
    paid_for = intent.metadata.get("course_ids")
    return intent.metadata.get("user_id") == user_id and paid_for == ",".join(course_ids)


class CheckoutService:
    """Checkout workflow over injected store, gateway and queue capabilities.

    ``savepoint`` wraps each course's store writes.  With SQL repos pass
    ``session.begin_nested`` so a failing course rolls back alone; the
    in-memory repos need nothing.
    """

    def __init__(
        self,
        *,
        courses: CourseRepo,
        users: UserRepo,
        progress: ProgressRepo,
        payments: ProcessedPaymentRepo,
        gateway: PaymentGateway,
        tasks: TaskQueue,
        currency: str = "usd",
        minor_unit: int = 100,
        savepoint: Savepoint | None = None,
    ) -> None:
        self._courses = courses
        self._users = users
        self._progress = progress
        self._payments = payments
        self._gateway = gateway
        self._tasks = tasks
        self._currency = currency
        self._minor_unit = minor_unit
        self._savepoint: Savepoint = savepoint or nullcontext

    # ------------------------------------------------------------------
    # Quote & intent
    # ------------------------------------------------------------------

    async def quote(self, course_ids: Sequence[str]) -> int:
        """Total price of ``course_ids`` in minor currency units.

        Raises InvalidRequest for an empty basket, NotFound at the first
        unknown course, UpstreamLookupError when the store itself fails.
        """
        if not course_ids:
            raise InvalidRequest("Please provide Course Id")

        total = Decimal(0)
        for course_id in course_ids:
            try:
                course = await self._courses.get_by_id(course_id)
            except Exception as exc:
                logger.exception(
                    "Course lookup failed course=%s",
                    course_id,
                    extra={"course_id": course_id},
                )
                raise UpstreamLookupError(str(exc) or "Course lookup failed") from exc
            if course is None:
                logger.warning(
                    "Quote rejected: unknown course=%s",
                    course_id,
                    extra={"course_id": course_id},
                )
                raise NotFound("Could not find the course")
            total += course.price

        amount = (total * self._minor_unit).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return int(amount)

    async def create_payment_intent(
        self, user_id: str, course_ids: Sequence[str]
    ) -> PaymentIntent:
        amount = await self.quote(course_ids)
        try:
            intent = await self._gateway.create_intent(
                amount=amount,
                currency=self._currency,
                metadata={"user_id": user_id, "course_ids": ",".join(course_ids)},
            )
        except GatewayError as exc:
            logger.exception(
                "Payment intent creation failed user=%s amount=%d",
                user_id,
                amount,
                extra={"user_id": user_id},
            )
            raise GatewayError("Could not initiate payment") from exc

        PAYMENT_INTENTS_CREATED.labels(currency=self._currency).inc()
        logger.info(
            "Payment intent created intent=%s user=%s amount=%d %s courses=%d",
            intent.id,
            user_id,
            amount,
            self._currency,
            len(course_ids),
            extra={"user_id": user_id, "payment_intent_id": intent.id},
        )
        return intent

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def verify_payment(
        self,
        user_id: str | None,
        payment_intent_id: str | None,
        course_ids: Sequence[str] | None,
    ) -> VerificationResult:
        if not payment_intent_id or not course_ids or not user_id:
            raise InvalidRequest("Payment data not found")

        log_ctx = {"user_id": user_id, "payment_intent_id": payment_intent_id}

        # The gateway refuses to confirm an intent twice, so a repeat
        # verification must be answered from the ledger
        try:
            existing = await self._payments.get(payment_intent_id)
        except Exception as exc:
            PAYMENT_VERIFICATIONS.labels(outcome="error").inc()
            logger.exception(
                "Could not read processed payment intent=%s",
                payment_intent_id,
                extra=log_ctx,
            )
            raise UpstreamLookupError("Error verifying payment") from exc
        if existing is not None:
            return self._already_processed(payment_intent_id, log_ctx)

        try:
            intent = await self._gateway.confirm_intent(payment_intent_id)
        except GatewayError as exc:
            PAYMENT_VERIFICATIONS.labels(outcome="error").inc()
            logger.exception(
                "Payment confirmation failed intent=%s",
                payment_intent_id,
                extra=log_ctx,
            )
            raise GatewayError("Error verifying payment") from exc

        if not intent.succeeded:
            PAYMENT_VERIFICATIONS.labels(outcome="failed").inc()
            logger.info(
                "Payment not successful intent=%s status=%s",
                payment_intent_id,
                intent.status,
                extra=log_ctx,
            )
            return VerificationResult(verified=False, message="Payment Failed")

        if not _intent_covers(intent, user_id, course_ids):
            PAYMENT_VERIFICATIONS.labels(outcome="mismatch").inc()
            logger.warning(
                "Payment intent does not match request intent=%s paid_for=%r requested=%r",
                payment_intent_id,
                intent.metadata.get("course_ids"),
                ",".join(course_ids),
                extra=log_ctx,
            )
            raise InvalidRequest("Payment does not match the requested courses")

        record = ProcessedPayment(
            payment_intent_id=payment_intent_id,
            user_id=user_id,
            course_ids=tuple(course_ids),
            processed_at=_now(),
        )
        try:
            claimed = await self._payments.claim(record)
        except Exception as exc:
            PAYMENT_VERIFICATIONS.labels(outcome="error").inc()
            logger.exception(
                "Could not record processed payment intent=%s",
                payment_intent_id,
                extra=log_ctx,
            )
            raise UpstreamLookupError("Error verifying payment") from exc

        if not claimed:
            # Lost a race with a concurrent verification of the same intent
            return self._already_processed(payment_intent_id, log_ctx)

        enrollments = await self.enroll_students(course_ids, user_id)
        PAYMENT_VERIFICATIONS.labels(outcome="succeeded").inc()
        failed = [r.course_id for r in enrollments if not r.enrolled]
        if failed:
            logger.warning(
                "Payment verified with partial enrollment intent=%s failed=%s",
                payment_intent_id,
                failed,
                extra=log_ctx,
            )
        else:
            logger.info(
                "Payment verified intent=%s courses=%d",
                payment_intent_id,
                len(enrollments),
                extra=log_ctx,
            )
        return VerificationResult(
            verified=True, message="Payment Verified", enrollments=enrollments
        )

    def _already_processed(self, payment_intent_id: str, log_ctx: dict) -> VerificationResult:
        PAYMENT_VERIFICATIONS.labels(outcome="duplicate").inc()
        logger.warning(
            "Payment already processed, skipping enrollment intent=%s",
            payment_intent_id,
            extra=log_ctx,
        )
        return VerificationResult(
            verified=True,
            message="Payment already processed",
            already_processed=True,
        )

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    async def enroll_students(
        self, course_ids: Sequence[str], user_id: str
    ) -> list[EnrollmentResult]:
        """Enroll ``user_id`` in each course; one result per course id.

        No duplicate check: calling this twice for the same pair creates a
        second progress record and queues a second email.  Callers that
        need exactly-once go through verify_payment.
        """
        results: list[EnrollmentResult] = []
        for course_id in course_ids:
            log_ctx = {"user_id": user_id, "course_id": course_id}
            try:
                async with self._savepoint():
                    enrolled = await self._apply_enrollment(course_id, user_id)
            except Exception as exc:
                ENROLLMENTS.labels(result="error").inc()
                logger.exception(
                    "Enrollment failed course=%s user=%s",
                    course_id,
                    user_id,
                    extra=log_ctx,
                )
                results.append(
                    EnrollmentResult(
                        course_id=course_id,
                        enrolled=False,
                        reason=str(exc) or type(exc).__name__,
                    )
                )
                continue

            if enrolled is None:
                ENROLLMENTS.labels(result="course_missing").inc()
                logger.warning("Course %s not found", course_id, extra=log_ctx)
                results.append(
                    EnrollmentResult(
                        course_id=course_id, enrolled=False, reason="course not found"
                    )
                )
                continue

            ENROLLMENTS.labels(result="enrolled").inc()
            course, student = enrolled
            email_queued = await self._queue_enrollment_email(course, student)
            results.append(
                EnrollmentResult(
                    course_id=course_id, enrolled=True, email_queued=email_queued
                )
            )
        return results

    async def _apply_enrollment(
        self, course_id: str, user_id: str
    ) -> tuple[Course, User] | None:
        course = await self._courses.add_student(course_id, user_id)
        if course is None:
            return None

        await self._progress.create(
            CourseProgress.new(course_id=course_id, user_id=user_id)
        )
        await self._users.add_course(user_id, course_id)

        # Re-read for the current email and first name
        student = await self._users.get_by_id(user_id)
        if student is None:
            raise LookupError(f"user {user_id} not found")
        return course, student

    async def _queue_enrollment_email(self, course: Course, student: User) -> bool:
        payload = {
            "to": student.email,
            "subject": course_enrollment_subject(course.name),
            "html": course_enrollment_email(course.name, student.first_name),
            "user_id": student.id,
            "course_id": course.id,
        }
        try:
            task = await self._tasks.enqueue(ENROLLMENT_EMAIL_QUEUE, payload)
        except Exception:
            ENROLLMENT_EMAILS.labels(result="queue_failed").inc()
            logger.exception(
                "Could not queue enrollment email course=%s user=%s",
                course.id,
                student.id,
                extra={"user_id": student.id, "course_id": course.id},
            )
            return False

        ENROLLMENT_EMAILS.labels(result="queued").inc()
        logger.debug(
            "Enrollment email queued task=%s course=%s",
            task.id,
            course.id,
            extra={"task_id": task.id, "course_id": course.id},
        )
        return True
