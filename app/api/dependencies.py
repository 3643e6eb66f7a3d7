from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.db.engine import async_session_factory
from app.models.course import Course
from app.models.principal import Principal
from app.models.user import User
from app.repos.course_repo import InMemoryCourseRepo
from app.repos.payment_repo import InMemoryProcessedPaymentRepo
from app.repos.pg_course_repo import PgCourseRepo
from app.repos.pg_payment_repo import PgProcessedPaymentRepo
from app.repos.pg_progress_repo import PgProgressRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.progress_repo import InMemoryProgressRepo
from app.repos.user_repo import InMemoryUserRepo
from app.services import token_service
from app.services.checkout_service import CheckoutService
from app.services.payment_gateway import (
    InMemoryPaymentGateway,
    PaymentGateway,
    StripeGateway,
)
from app.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


# ---------------------------------------------------------------------------
# In-memory store (used when DATABASE_URL is not configured)
# ---------------------------------------------------------------------------

course_repo = InMemoryCourseRepo()
user_repo = InMemoryUserRepo()
progress_repo = InMemoryProgressRepo()
payment_repo = InMemoryProcessedPaymentRepo()


async def seed_sample_catalog() -> None:
    """Seed a course and a learner for local development."""
    if await course_repo.get_by_id("intro-to-python") is None:
        await course_repo.add(
            Course.new(id="intro-to-python", name="Introduction to Python", price="20.00")
        )
    if await user_repo.get_by_id("test-user") is None:
        await user_repo.add(
            User.new(id="test-user", email="test-user@example.com", first_name="Tee")
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


def _build_gateway() -> PaymentGateway:
    if SETTINGS.stripe_secret_key:
        return StripeGateway.from_api_key(SETTINGS.stripe_secret_key)
    logger.info("No STRIPE_SECRET_KEY configured — using in-memory payment gateway")
    return InMemoryPaymentGateway()


payment_gateway: PaymentGateway = _build_gateway()


def get_payment_gateway() -> PaymentGateway:
    return payment_gateway


def get_task_queue() -> TaskQueue:
    return task_queue


async def get_checkout_service(
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    tasks: Annotated[TaskQueue, Depends(get_task_queue)],
) -> AsyncGenerator[CheckoutService, None]:
    """Build a CheckoutService for one request.

    With a database, every repo shares one session and the request is a
    single transaction; each course's enrollment writes run in their own
    SAVEPOINT.
    """
    if async_session_factory is None:
        yield CheckoutService(
            courses=course_repo,
            users=user_repo,
            progress=progress_repo,
            payments=payment_repo,
            gateway=gateway,
            tasks=tasks,
            currency=SETTINGS.payment_currency,
            minor_unit=SETTINGS.currency_minor_unit,
        )
        return

    async with async_session_factory() as session:
        try:
            yield CheckoutService(
                courses=PgCourseRepo(session),
                users=PgUserRepo(session),
                progress=PgProgressRepo(session),
                payments=PgProcessedPaymentRepo(session),
                gateway=gateway,
                tasks=tasks,
                currency=SETTINGS.payment_currency,
                minor_unit=SETTINGS.currency_minor_unit,
                savepoint=session.begin_nested,
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise
