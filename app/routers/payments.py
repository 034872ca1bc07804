# =============================================================================
# app/routers/payments.py - Stripe Payment Endpoints
# =============================================================================
# All endpoints answer 503 when Stripe keys are not configured.
# =============================================================================

from fastapi import APIRouter

from app.auth import CurrentUser
from app.dependencies import PaymentServiceDep
from core.models import (
    ApiResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentConfigResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)

router = APIRouter()


@router.post("/checkout-session", response_model=ApiResponse[CheckoutSessionResponse])
def create_checkout_session(
    request: CheckoutSessionRequest,
    user: CurrentUser,
    service: PaymentServiceDep,
):
    """Create a Stripe Checkout session; redirect the browser to `url`."""
    return ApiResponse(data=service.create_checkout_session(user.id, request))


@router.post("/payment-intent", response_model=ApiResponse[PaymentIntentResponse])
def create_payment_intent(
    request: PaymentIntentRequest,
    user: CurrentUser,
    service: PaymentServiceDep,
):
    """Create a PaymentIntent; confirm it client-side with `clientSecret`."""
    return ApiResponse(data=service.create_payment_intent(user.id, request))


@router.get("/config", response_model=ApiResponse[PaymentConfigResponse])
def get_payment_config(user: CurrentUser, service: PaymentServiceDep):
    return ApiResponse(data=service.public_config())
