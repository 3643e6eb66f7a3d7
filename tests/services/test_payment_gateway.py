"""Tests for the Stripe adapter and the in-memory gateway."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe

from app.core.errors import GatewayError
from app.services.payment_gateway import InMemoryPaymentGateway, StripeGateway


def _stripe_intent(status: str = "requires_payment_method") -> SimpleNamespace:
    return SimpleNamespace(
        id="pi_123",
        client_secret="pi_123_secret_abc",
        amount=3500,
        currency="usd",
        status=status,
    )


def test_stripe_create_intent_passes_amount_currency_and_metadata() -> None:
    client = MagicMock()
    client.payment_intents.create.return_value = _stripe_intent()
    gateway = StripeGateway(client)

    intent = asyncio.run(
        gateway.create_intent(amount=3500, currency="usd", metadata={"user_id": "U1"})
    )

    client.payment_intents.create.assert_called_once_with(
        params={"amount": 3500, "currency": "usd", "metadata": {"user_id": "U1"}}
    )
    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    assert intent.amount == 3500


def test_stripe_create_intent_omits_empty_metadata() -> None:
    client = MagicMock()
    client.payment_intents.create.return_value = _stripe_intent()

    asyncio.run(StripeGateway(client).create_intent(amount=100, currency="usd"))

    client.payment_intents.create.assert_called_once_with(
        params={"amount": 100, "currency": "usd"}
    )


def test_stripe_confirm_intent_maps_status() -> None:
    client = MagicMock()
    client.payment_intents.confirm.return_value = _stripe_intent("succeeded")

    intent = asyncio.run(StripeGateway(client).confirm_intent("pi_123"))

    client.payment_intents.confirm.assert_called_once_with("pi_123")
    assert intent.succeeded is True


def test_stripe_confirm_intent_carries_metadata() -> None:
    client = MagicMock()
    stripe_intent = _stripe_intent("succeeded")
    stripe_intent.metadata = MagicMock()
    stripe_intent.metadata.to_dict.return_value = {"user_id": "U1", "course_ids": "C1,C2"}
    client.payment_intents.confirm.return_value = stripe_intent

    intent = asyncio.run(StripeGateway(client).confirm_intent("pi_123"))

    assert intent.metadata == {"user_id": "U1", "course_ids": "C1,C2"}


def test_stripe_errors_become_gateway_errors() -> None:
    client = MagicMock()
    client.payment_intents.create.side_effect = stripe.StripeError("No API key provided")
    client.payment_intents.confirm.side_effect = stripe.StripeError("No such payment_intent")
    gateway = StripeGateway(client)

    with pytest.raises(GatewayError, match="No API key provided"):
        asyncio.run(gateway.create_intent(amount=100, currency="usd"))
    with pytest.raises(GatewayError, match="No such payment_intent"):
        asyncio.run(gateway.confirm_intent("pi_404"))


# ---- in-memory gateway ----


def test_in_memory_gateway_records_created_intents() -> None:
    gateway = InMemoryPaymentGateway()
    intent = asyncio.run(gateway.create_intent(amount=500, currency="usd"))
    assert gateway.created == [intent]
    assert intent.client_secret.startswith(intent.id)
    assert intent.succeeded is False


def test_in_memory_gateway_confirm_uses_override() -> None:
    gateway = InMemoryPaymentGateway()
    intent = asyncio.run(gateway.create_intent(amount=500, currency="usd"))
    gateway.set_status(intent.id, "canceled")

    confirmed = asyncio.run(gateway.confirm_intent(intent.id))

    assert confirmed.status == "canceled"
    assert confirmed.amount == 500


def test_in_memory_gateway_keeps_metadata_through_confirm() -> None:
    gateway = InMemoryPaymentGateway()
    intent = asyncio.run(
        gateway.create_intent(amount=500, currency="usd", metadata={"user_id": "U1"})
    )

    confirmed = asyncio.run(gateway.confirm_intent(intent.id))

    assert confirmed.metadata == {"user_id": "U1"}
    assert asyncio.run(gateway.confirm_intent("pi_unknown")).metadata == {}


def test_in_memory_gateway_fail_with_raises() -> None:
    gateway = InMemoryPaymentGateway()
    gateway.fail_with = "boom"
    with pytest.raises(GatewayError):
        asyncio.run(gateway.confirm_intent("pi_x"))
