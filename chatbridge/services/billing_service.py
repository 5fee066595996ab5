"""
BillingService: Stripe Checkout sessions and webhook events.

Checkout completion is recorded on the paying user's account metadata
under ``subscription``.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import stripe
from sqlalchemy.orm import Session

from chatbridge.config.settings import Settings
from chatbridge.errors import UpstreamError, ValidationError
from chatbridge.persistence.models import now_utc
from chatbridge.services.account_service import AccountService

logger = logging.getLogger(__name__)


class BillingService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _configure(self) -> None:
        if not self.settings.stripe_secret_key:
            raise UpstreamError("Stripe is not configured")
        stripe.api_key = self.settings.stripe_secret_key

    def create_checkout_session(
        self, *, price_id: str, email: str, name: str | None = None, user_id: str | None = None
    ) -> dict[str, str]:
        self._configure()
        base_url = self.settings.app_public_url
        try:
            customer = stripe.Customer.create(email=email, name=name or None)
            session = stripe.checkout.Session.create(
                customer=customer.id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                client_reference_id=user_id,
                success_url=f"{base_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{base_url}/pricing",
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session failed: %s", exc)
            raise UpstreamError("Failed to create checkout session") from exc
        logger.info("Created checkout session %s", session.id, extra={"user_id": user_id})
        return {"sessionId": session.id, "url": session.url}

    def parse_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verified event when a webhook secret is configured, plain JSON otherwise."""
        if self.settings.stripe_webhook_secret:
            if not signature:
                raise ValidationError("Missing Stripe signature")
            try:
                event = stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)
            except stripe.SignatureVerificationError as exc:
                raise ValidationError("Invalid signature") from exc
            except ValueError as exc:
                raise ValidationError("Invalid payload") from exc
            return event.to_dict() if hasattr(event, "to_dict") else dict(event)

        if self.settings.is_production:
            raise ValidationError("Stripe webhook secret is not configured")
        try:
            event = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError("Invalid payload") from exc
        if not isinstance(event, dict):
            raise ValidationError("Invalid payload")
        return event

    def handle_event(self, db: Session, event: dict[str, Any]) -> None:
        event_type = event.get("type")
        data = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            user_id = data.get("client_reference_id")
            logger.info("Payment completed for %s (%s)", user_id, data.get("customer_email"), extra={"user_id": user_id})
            account = AccountService.get_by_user_id(db, user_id) if user_id else None
            if account is None:
                logger.warning("Checkout completed for unknown user %s", user_id)
                return
            AccountService.merge_metadata(
                db,
                account,
                {
                    "subscription": {
                        "status": "active",
                        "customerId": data.get("customer"),
                        "subscriptionId": data.get("subscription"),
                        "checkoutSessionId": data.get("id"),
                        "paidAt": now_utc().isoformat(),
                    }
                },
            )
        elif event_type == "invoice.payment_succeeded":
            logger.info("Subscription payment succeeded for customer %s", data.get("customer"))
        else:
            logger.info("Unhandled Stripe event type: %s", event_type)
