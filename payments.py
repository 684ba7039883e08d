"""
Stripe payment-intent adapter.

Only creates card intents in USD and hands back the client secret; the
charge itself is completed client-side.
"""

import logging
from decimal import ROUND_DOWN, Decimal

import stripe
from fastapi import Request

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)

CURRENCY = "usd"


def to_minor_units(price) -> int:
    return int((Decimal(str(price)) * 100).to_integral_value(rounding=ROUND_DOWN))


class StripeGateway:
    def __init__(self, api_key: str = config.PAYMENT_SECRET_KEY):
        self.api_key = api_key

    def create_card_intent(self, price) -> str:
        amount = to_minor_units(price)
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=CURRENCY,
                payment_method_types=["card"],
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe error creating payment intent for %s cents: %s", amount, exc)
            raise UpstreamError("Payment gateway request failed") from exc
        return intent["client_secret"]


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway
