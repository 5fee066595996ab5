from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from chatbridge.api.deps import get_billing_service
from chatbridge.errors import ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.schemas.billing import CheckoutSessionIn
from chatbridge.services.billing_service import BillingService

router = APIRouter(tags=["billing"])


@router.post("/create-checkout-session")
def create_checkout_session(
    payload: CheckoutSessionIn,
    billing: BillingService = Depends(get_billing_service),
) -> dict:
    if not payload.price_id or not payload.email:
        raise ValidationError("Missing required fields: priceId and email are required")
    return billing.create_checkout_session(
        price_id=payload.price_id,
        email=payload.email,
        name=payload.name,
        user_id=payload.user_id,
    )


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
) -> dict:
    body = await request.body()
    event = billing.parse_event(body, request.headers.get("stripe-signature"))
    billing.handle_event(db, event)
    return {"received": True}
