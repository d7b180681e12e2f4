import json
import unittest
from unittest.mock import patch

import stripe

from booking_engine.domain.errors import (
    InvalidWebhookError,
    PaymentFailedError,
    PaymentProcessorUnavailableError,
)
from booking_engine.infrastructure.circuit_breaker import build_processor_breaker
from booking_engine.infrastructure.gateways.stripe_gateway import StripePaymentGateway
from tests.conftest import sign_payload


def _intent_object(**overrides):
    data = {
        "id": "pi_123",
        "object": "payment_intent",
        "status": "requires_payment_method",
        "amount": 16500,
        "currency": "usd",
        "client_secret": "pi_123_secret_abc",
        "metadata": {"booking_id": "b-1"},
    }
    data.update(overrides)
    return stripe.PaymentIntent.construct_from(data, "sk_test_123")


class TestStripePaymentGateway(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.breaker = build_processor_breaker(fail_max=3, reset_timeout=60)
        self.gateway = StripePaymentGateway(
            api_key="sk_test_123",
            webhook_secret="whsec_test",
            max_retries=2,
            retry_base_delay=0,
            timeout_seconds=5,
            breaker=self.breaker,
        )

    async def _create_intent(self):
        return await self.gateway.create_payment_intent(
            amount=16500,
            currency="USD",
            customer_id="cus_1",
            destination_account_id="acct_owner1",
            application_fee_amount=2159,
            metadata={"booking_id": "b-1"},
            idempotency_key="booking-b-1-intent-1",
        )

    @patch("stripe.PaymentIntent.create")
    async def test_destination_charge(self, mock_create):
        mock_create.return_value = _intent_object()

        intent = await self._create_intent()

        self.assertEqual(intent.id, "pi_123")
        self.assertEqual(intent.client_secret, "pi_123_secret_abc")
        self.assertEqual(intent.metadata, {"booking_id": "b-1"})
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["currency"], "usd")
        self.assertEqual(kwargs["application_fee_amount"], 2159)
        self.assertEqual(kwargs["transfer_data"], {"destination": "acct_owner1"})
        self.assertEqual(kwargs["idempotency_key"], "booking-b-1-intent-1")

    @patch("stripe.PaymentIntent.retrieve")
    async def test_retrieve_reads_failure_from_stripe_object(self, mock_retrieve):
        mock_retrieve.return_value = _intent_object(
            status="requires_payment_method",
            client_secret=None,
            last_payment_error={"code": "card_declined", "message": "Your card was declined."},
        )

        intent = await self.gateway.retrieve_payment_intent("pi_123")

        self.assertEqual(intent.status, "requires_payment_method")
        self.assertIsNone(intent.client_secret)
        self.assertEqual(intent.failure_message, "Your card was declined.")
        self.assertEqual(intent.metadata, {"booking_id": "b-1"})
        mock_retrieve.assert_called_once_with("pi_123")

    @patch("stripe.PaymentIntent.retrieve")
    async def test_retrieve_without_metadata_or_error(self, mock_retrieve):
        mock_retrieve.return_value = stripe.PaymentIntent.construct_from(
            {
                "id": "pi_9",
                "object": "payment_intent",
                "status": "succeeded",
                "amount": 500,
                "currency": "usd",
            },
            "sk_test_123",
        )

        intent = await self.gateway.retrieve_payment_intent("pi_9")

        self.assertEqual(intent.status, "succeeded")
        self.assertEqual(intent.metadata, {})
        self.assertIsNone(intent.failure_message)
        self.assertIsNone(intent.client_secret)

    @patch("stripe.PaymentIntent.create")
    async def test_connection_error_is_retried_with_same_key(self, mock_create):
        mock_create.side_effect = [stripe.APIConnectionError("network down"), _intent_object()]

        intent = await self._create_intent()

        self.assertEqual(intent.id, "pi_123")
        self.assertEqual(mock_create.call_count, 2)
        keys = {c.kwargs["idempotency_key"] for c in mock_create.call_args_list}
        self.assertEqual(keys, {"booking-b-1-intent-1"})

    @patch("stripe.PaymentIntent.create")
    async def test_gives_up_after_max_retries(self, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("network down")

        with self.assertRaises(PaymentProcessorUnavailableError):
            await self._create_intent()

        self.assertEqual(mock_create.call_count, 3)

    @patch("stripe.PaymentIntent.create")
    async def test_card_error_is_terminal(self, mock_create):
        mock_create.side_effect = stripe.CardError("Your card was declined.", "card", "card_declined")

        with self.assertRaises(PaymentFailedError) as ctx:
            await self._create_intent()

        self.assertEqual(ctx.exception.decline_code, "card_declined")
        self.assertEqual(mock_create.call_count, 1)

    @patch("stripe.Refund.create")
    async def test_breaker_opens_after_repeated_failures(self, mock_refund):
        mock_refund.side_effect = stripe.APIConnectionError("network down")
        gateway = StripePaymentGateway(
            api_key="sk_test_123",
            max_retries=0,
            retry_base_delay=0,
            breaker=build_processor_breaker(fail_max=2, reset_timeout=60),
        )

        for _ in range(3):
            with self.assertRaises(PaymentProcessorUnavailableError):
                await gateway.create_refund("pi_123", 1000, "damage", "dispute-d-1-refund")

        # Con el circuito abierto la tercera llamada no llega al SDK.
        self.assertEqual(mock_refund.call_count, 2)

    @patch("stripe.Refund.create")
    async def test_refund_reverses_transfer(self, mock_refund):
        mock_refund.return_value = stripe.Refund.construct_from(
            {"id": "re_1", "object": "refund", "amount": 1000, "status": "succeeded"},
            "sk_test_123",
        )

        refund = await self.gateway.create_refund("pi_123", 1000, "damage", "dispute-d-1-refund")

        self.assertEqual(refund.id, "re_1")
        kwargs = mock_refund.call_args.kwargs
        self.assertTrue(kwargs["reverse_transfer"])
        self.assertEqual(kwargs["payment_intent"], "pi_123")

    async def test_construct_event_verifies_signature(self):
        payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded", "data": {}})

        event = await self.gateway.construct_event(
            payload.encode(), sign_payload(payload, "whsec_test")
        )

        self.assertEqual(event["id"], "evt_1")

    async def test_construct_event_rejects_bad_signature(self):
        payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded"})

        with self.assertRaises(InvalidWebhookError):
            await self.gateway.construct_event(payload.encode(), sign_payload(payload, "whsec_x"))
        with self.assertRaises(InvalidWebhookError):
            await self.gateway.construct_event(payload.encode(), None)
