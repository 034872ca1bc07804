# =============================================================================
# core/services/payment_service.py - Stripe Payments
# =============================================================================
# Creates hosted Checkout sessions and PaymentIntents for the web client.
# Payments are optional: without both Stripe keys every operation raises
# PaymentsNotConfiguredError (503).
# =============================================================================

import logging
from uuid import UUID

import stripe

from app.exceptions import PaymentGatewayError, PaymentsNotConfiguredError, PaymentValidationError
from core.models.payment import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)

logger = logging.getLogger(__name__)

MIN_CHECKOUT_AMOUNT = 0.5
DEFAULT_PRODUCT_NAME = "SmartPhoto Credits"


def to_minor_units(amount: float) -> int:
    """Dollars to cents, rounding halves up."""
    return int(amount * 100 + 0.5)


class PaymentService:
    """
    Service for Stripe payment operations.

    Args:
        secret_key: Stripe secret key
        publishable_key: Stripe publishable key returned to clients
    """

    def __init__(self, secret_key: str | None, publishable_key: str | None):
        self._secret_key = secret_key
        self._publishable_key = publishable_key

    @property
    def configured(self) -> bool:
        return bool(self._secret_key and self._publishable_key)

    def _require_configured(self) -> None:
        if not self.configured:
            raise PaymentsNotConfiguredError()

    def public_config(self) -> PaymentConfigResponse:
        self._require_configured()
        return PaymentConfigResponse(publishable_key=self._publishable_key)

    def create_checkout_session(
        self,
        user_id: UUID | str,
        request: CheckoutSessionRequest,
    ) -> CheckoutSessionResponse:
        """
        Create a one-off card Checkout session for a single line item.

        Raises:
            PaymentsNotConfiguredError: Stripe keys missing
            PaymentValidationError: Amount below $0.50
            PaymentGatewayError: Stripe rejected the call
        """
        self._require_configured()
        if request.amount < MIN_CHECKOUT_AMOUNT:
            raise PaymentValidationError("amount must be at least $0.50")

        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": "usd",
                        "product_data": {"name": request.product_name or DEFAULT_PRODUCT_NAME},
                        "unit_amount": to_minor_units(request.amount),
                    },
                    "quantity": 1,
                }],
                metadata={"userId": str(user_id)},
                success_url=request.success_url,
                cancel_url=request.cancel_url,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"Created checkout session {session.id} for user {user_id}")
        return CheckoutSessionResponse(session_id=session.id, url=session.url)

    def create_payment_intent(
        self,
        user_id: UUID | str,
        request: PaymentIntentRequest,
    ) -> PaymentIntentResponse:
        """
        Create a PaymentIntent with automatic payment methods.

        Raises:
            PaymentsNotConfiguredError: Stripe keys missing
            PaymentValidationError: Amount not positive
            PaymentGatewayError: Stripe rejected the call
        """
        self._require_configured()
        if request.amount <= 0:
            raise PaymentValidationError("amount must be greater than 0")

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._secret_key,
                amount=to_minor_units(request.amount),
                currency=request.currency.lower(),
                automatic_payment_methods={"enabled": True},
                metadata={
                    "productId": request.product_id or "",
                    "userId": str(user_id),
                },
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"Created payment intent {intent.id} for user {user_id}")
        return PaymentIntentResponse(client_secret=intent.client_secret, payment_intent_id=intent.id)
