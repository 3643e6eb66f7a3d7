"""Payment gateway capability.

The checkout service talks to the gateway only through the
``PaymentGateway`` protocol, and receives an instance through FastAPI's
dependency system (see app.api.dependencies).  Two implementations:

  StripeGateway            — wraps an explicit ``stripe.StripeClient``.
                             No process-wide ``stripe.api_key`` is set,
                             so tests and multiple accounts never clash.
  InMemoryPaymentGateway   — dev/test stand-in with scriptable outcomes.

Both raise ``GatewayError`` for any gateway-side failure.  The Stripe SDK
is synchronous; calls run in a worker thread so the event loop keeps
serving other requests while Stripe answers.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Protocol

import stripe

from app.core.errors import GatewayError
from app.models.payment import SUCCEEDED, PaymentIntent

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def create_intent(
        self, *, amount: int, currency: str, metadata: dict[str, str] | None = None
    ) -> PaymentIntent: ...

    async def confirm_intent(self, payment_intent_id: str) -> PaymentIntent: ...


def _metadata_of(obj) -> dict[str, str]:
    metadata = getattr(obj, "metadata", None)
    if metadata is None:
        return {}
    # Recent SDKs return a StripeObject that is no longer a dict subclass
    if hasattr(metadata, "to_dict"):
        metadata = metadata.to_dict()
    return {str(k): str(v) for k, v in metadata.items()}


def _to_intent(obj) -> PaymentIntent:
    return PaymentIntent(
        id=obj.id,
        client_secret=obj.client_secret or "",
        amount=int(obj.amount),
        currency=obj.currency,
        status=obj.status,
        metadata=_metadata_of(obj),
    )


class StripeGateway:
    def __init__(self, client: stripe.StripeClient) -> None:
        self._client = client

    @classmethod
    def from_api_key(cls, api_key: str) -> StripeGateway:
        return cls(stripe.StripeClient(api_key))

    async def create_intent(
        self, *, amount: int, currency: str, metadata: dict[str, str] | None = None
    ) -> PaymentIntent:
        params: dict = {"amount": amount, "currency": currency}
        if metadata:
            params["metadata"] = metadata
        try:
            obj = await asyncio.to_thread(
                self._client.payment_intents.create, params=params
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"stripe create failed: {exc}") from exc
        return _to_intent(obj)

    async def confirm_intent(self, payment_intent_id: str) -> PaymentIntent:
        try:
            obj = await asyncio.to_thread(
                self._client.payment_intents.confirm, payment_intent_id
            )
        except stripe.StripeError as exc:
            raise GatewayError(f"stripe confirm failed: {exc}") from exc
        return _to_intent(obj)


class InMemoryPaymentGateway:
    """Scriptable gateway for tests and local dev — no network.

    ``confirm_status`` is the status every confirmation reports unless a
    per-intent override was set with ``set_status``.  Set ``fail_with``
    to make the next calls raise ``GatewayError``.
    """

    def __init__(self, confirm_status: str = SUCCEEDED) -> None:
        self.confirm_status = confirm_status
        self.fail_with: str | None = None
        self.created: list[PaymentIntent] = []
        self.confirmed: list[str] = []
        self._intents: dict[str, PaymentIntent] = {}
        self._status_overrides: dict[str, str] = {}

    def set_status(self, payment_intent_id: str, status: str) -> None:
        self._status_overrides[payment_intent_id] = status

    def register_intent(
        self,
        payment_intent_id: str,
        *,
        metadata: dict[str, str],
        amount: int = 0,
        currency: str = "usd",
    ) -> PaymentIntent:
        """Make an intent known without going through create_intent."""
        intent = PaymentIntent(
            id=payment_intent_id,
            client_secret=f"{payment_intent_id}_secret",
            amount=amount,
            currency=currency,
            status="requires_confirmation",
            metadata=dict(metadata),
        )
        self._intents[payment_intent_id] = intent
        return intent

    def reset(self) -> None:
        self.confirm_status = SUCCEEDED
        self.fail_with = None
        self.created.clear()
        self.confirmed.clear()
        self._intents.clear()
        self._status_overrides.clear()

    async def create_intent(
        self, *, amount: int, currency: str, metadata: dict[str, str] | None = None
    ) -> PaymentIntent:
        if self.fail_with:
            raise GatewayError(self.fail_with)
        intent_id = f"pi_{uuid.uuid4().hex[:24]}"
        intent = PaymentIntent(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            amount=amount,
            currency=currency,
            status="requires_payment_method",
            metadata=dict(metadata or {}),
        )
        self._intents[intent_id] = intent
        self.created.append(intent)
        return intent

    async def confirm_intent(self, payment_intent_id: str) -> PaymentIntent:
        if self.fail_with:
            raise GatewayError(self.fail_with)
        self.confirmed.append(payment_intent_id)
        status = self._status_overrides.get(payment_intent_id, self.confirm_status)
        known = self._intents.get(payment_intent_id)
        if known is None:
            # Unknown intents confirm too, but carry no checkout metadata
            return PaymentIntent(
                id=payment_intent_id,
                client_secret="",
                amount=0,
                currency="usd",
                status=status,
            )
        confirmed = PaymentIntent(
            id=known.id,
            client_secret=known.client_secret,
            amount=known.amount,
            currency=known.currency,
            status=status,
            metadata=known.metadata,
        )
        self._intents[payment_intent_id] = confirmed
        return confirmed
