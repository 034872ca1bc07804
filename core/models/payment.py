# =============================================================================
# core/models/payment.py - Payment Schemas
# =============================================================================
# Request/response shapes for the Stripe endpoints. Amounts are in major
# currency units (dollars); the service converts them to cents.
# =============================================================================

from pydantic import Field

from .base import CamelModel


class CheckoutSessionRequest(CamelModel):
    """Input for POST /payments/checkout-session."""
    amount: float = Field(..., allow_inf_nan=False, description="Amount in dollars (minimum 0.50)")
    product_name: str | None = Field(default=None, max_length=250)
    success_url: str = Field(..., min_length=1)
    cancel_url: str = Field(..., min_length=1)


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: str | None = None


class PaymentIntentRequest(CamelModel):
    """Input for POST /payments/payment-intent."""
    amount: float = Field(..., allow_inf_nan=False, description="Amount in major currency units")
    currency: str = Field(default="usd", min_length=3, max_length=3)
    product_id: str | None = None


class PaymentIntentResponse(CamelModel):
    client_secret: str | None = None
    payment_intent_id: str


class PaymentConfigResponse(CamelModel):
    publishable_key: str
