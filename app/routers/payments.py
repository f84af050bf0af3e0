"""
Router for payment endpoints (Stripe checkout and webhook)
"""
import json
import logging
import stripe
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from uuid import UUID
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.entitlements import get_notifier
from app.models.user import User
from app.config import settings
from app.schemas.subscription import CheckoutSessionRequest
from app.services import quota_policy
from app.services.plan_notifier import PlanStateNotifier
from app.services.plan_resolver import provision_default_subscription
from app.services.subscription_events import SubscriptionEventProcessor, WebhookProcessingError

logger = logging.getLogger(__name__)
router = APIRouter()

# Configure Stripe
stripe.api_key = settings.STRIPE_SECRET_KEY


@router.post("/payments/create-checkout-session")
async def create_checkout_session(
    data: Optional[CheckoutSessionRequest] = None,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Creates a Stripe checkout session for the Pro plan.

    Body (optional):
    {
        "price_or_product_ref": "price_...",
        "return_url": "https://notes.example.com"
    }

    Returns:
        {"url": <checkout redirect>} or {"error": <message>}
    """
    data = data or CheckoutSessionRequest()
    price_id = data.price_or_product_ref or settings.STRIPE_PRICE_ID_PRO
    return_url = (data.return_url or settings.FRONTEND_URL).rstrip("/")

    if not price_id:
        logger.error("STRIPE_PRICE_ID_PRO not configured")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Checkout is not configured"}
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "User not found"}
        )

    subscription = provision_default_subscription(db, user_id)

    if quota_policy.is_entitled(subscription.plan, subscription.status):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "You already have a Pro subscription"}
        )

    try:
        # Reuse the Stripe customer if we already have one
        customer_id = subscription.stripe_customer_id
        if not customer_id:
            customer = stripe.Customer.create(
                email=user.email,
                metadata={
                    'user_id': str(user_id)
                }
            )
            customer_id = customer.id
            logger.info(f"Created Stripe customer: {customer_id} for user: {user_id}")

        session_params = {
            'payment_method_types': ['card'],
            'customer': customer_id,
            'line_items': [{
                'price': price_id,
                'quantity': 1,
            }],
            'mode': settings.STRIPE_CHECKOUT_MODE,
            'success_url': f"{return_url}/upgrade?success=true&session_id={{CHECKOUT_SESSION_ID}}",
            'cancel_url': f"{return_url}/upgrade?canceled=true",
            'metadata': {
                'user_id': str(user_id),
                'plan': 'pro'
            },
        }
        if settings.STRIPE_CHECKOUT_MODE == "subscription":
            session_params['subscription_data'] = {
                'metadata': {
                    'user_id': str(user_id),
                    'plan': 'pro'
                }
            }

        checkout_session = stripe.checkout.Session.create(**session_params)

        # Only payment references change here; plan and status belong to the webhook
        subscription.stripe_customer_id = customer_id
        subscription.stripe_session_id = checkout_session.id
        subscription.payment_status = "pending"
        db.commit()

        logger.info(f"Checkout session created: {checkout_session.id} for user: {user_id}")

        return {"url": checkout_session.url}

    except stripe.StripeError as e:
        logger.error(f"Stripe error: {e}")
        db.rollback()
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": f"Error creating checkout session: {e.user_message or str(e)}"}
        )
    except Exception as e:
        logger.error(f"Error creating checkout session: {e}", exc_info=True)
        db.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal error creating checkout session"}
        )


@router.post("/payments/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    notifier: PlanStateNotifier = Depends(get_notifier)
):
    """
    Stripe webhook.

    Handled events:
    - checkout.session.completed: user becomes PRO
    - payment_intent.succeeded: logged only
    - customer.subscription.updated: status/period sync
    - customer.subscription.deleted: status canceled
    Other event types are acknowledged and ignored.
    """
    payload = await request.body()
    sig_header = request.headers.get('stripe-signature')

    if not sig_header:
        logger.warning("Webhook rejected: missing stripe-signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header"
        )

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured"
        )

    try:
        stripe.Webhook.construct_event(
            payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except ValueError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload"
        )
    except stripe.SignatureVerificationError as e:
        # Possible forgery attempt
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    # Payload is authentic from here on
    event = json.loads(payload)

    processor = SubscriptionEventProcessor(db, notifier)
    try:
        result = processor.process(event)
    except WebhookProcessingError as e:
        logger.warning(f"Webhook event {event.get('id')} not applied: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error processing webhook: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error processing webhook"
        )

    logger.info(f"Webhook {result.event_type} processed: {result.outcome}")
    return {"received": True}
