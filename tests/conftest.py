from __future__ import annotations

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.api.dependencies import (  # noqa: E402
    course_repo,
    get_payment_gateway,
    payment_repo,
    progress_repo,
    user_repo,
)
from app.main import app  # noqa: E402
from app.models.course import Course  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.mail_sender import mail_sender  # noqa: E402
from app.services.payment_gateway import InMemoryPaymentGateway  # noqa: E402
from app.services.task_queue import task_queue  # noqa: E402


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Clear the in-memory document store between tests."""
    course_repo._by_id.clear()
    user_repo._by_id.clear()
    progress_repo._records.clear()
    payment_repo._by_intent.clear()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_outbox() -> None:
    if hasattr(mail_sender, "outbox"):
        mail_sender.outbox.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def gateway():
    """Fresh scriptable gateway injected into every request."""
    fake = InMemoryPaymentGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def token() -> str:
    return mint_token()


def auth(user_id: str = "test-user") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id)}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def add_course(course_id: str, price: str, name: str | None = None) -> Course:
    course = Course(id=course_id, name=name or f"Course {course_id}", price=Decimal(price))
    asyncio.run(course_repo.add(course))
    return course


def add_user(user_id: str, email: str | None = None, first_name: str = "Ada") -> User:
    user = User.new(id=user_id, email=email or f"{user_id.lower()}@example.com", first_name=first_name)
    asyncio.run(user_repo.add(user))
    return user
