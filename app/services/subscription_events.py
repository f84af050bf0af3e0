"""
Subscription event processor - applies Stripe webhook events to user_subscriptions.

Every transition is a full-state upsert keyed by user_id, so redelivered
events converge on the same row. Events older than the last applied one
(by the provider's "created" timestamp) are discarded.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Mapping
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.subscription import Subscription, Tier, SubscriptionStatus
from app.models.user import User
from app.services.plan_notifier import PlanStateNotifier
from app.services.plan_resolver import plan_state_from_row

logger = logging.getLogger(__name__)

# Stripe subscription statuses mapped onto ours
STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.INCOMPLETE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "canceled": SubscriptionStatus.CANCELED,
}


class WebhookProcessingError(Exception):
    """Event was authentic but could not be applied"""
    pass


@dataclass(frozen=True)
class EventResult:
    event_type: str
    outcome: str  # applied | stale | logged | ignored
    user_id: Optional[UUID] = None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class SubscriptionEventProcessor:

    def __init__(self, db: Session, notifier: Optional[PlanStateNotifier] = None):
        self.db = db
        self.notifier = notifier

    def process(self, event: Mapping[str, Any]) -> EventResult:
        """
        Applies a verified Stripe event.

        Args:
            event: Event envelope ({"id", "type", "created", "data": {"object": ...}})

        Returns:
            EventResult describing what happened

        Raises:
            WebhookProcessingError: If the event cannot be attributed to a user
        """
        event_type = event.get("type", "")
        data_object = (event.get("data") or {}).get("object") or {}
        event_at = _from_timestamp(event.get("created"))

        logger.info(f"Processing Stripe event {event.get('id')}: {event_type}")

        if event_type == "checkout.session.completed":
            return self._checkout_completed(event_type, data_object, event_at)
        if event_type == "payment_intent.succeeded":
            logger.info(
                f"Payment intent {data_object.get('id')} succeeded "
                f"(customer={data_object.get('customer')}, amount={data_object.get('amount')})"
            )
            return EventResult(event_type=event_type, outcome="logged")
        if event_type == "customer.subscription.updated":
            return self._subscription_updated(event_type, data_object, event_at)
        if event_type == "customer.subscription.deleted":
            return self._subscription_deleted(event_type, data_object, event_at)

        logger.info(f"Unhandled Stripe event type: {event_type}")
        return EventResult(event_type=event_type, outcome="ignored")

    def _checkout_completed(self, event_type: str, session: Mapping[str, Any], event_at: Optional[datetime]) -> EventResult:
        customer_details = session.get("customer_details") or {}
        user_id = self._resolve_user_id(
            metadata=session.get("metadata"),
            customer_id=session.get("customer"),
            email=session.get("customer_email") or customer_details.get("email"),
        )

        fields = {
            "plan": Tier.PRO.value,
            "status": SubscriptionStatus.ACTIVE.value,
            "stripe_session_id": session.get("id"),
            "payment_status": "paid",
        }
        if session.get("customer"):
            fields["stripe_customer_id"] = session.get("customer")
        if session.get("subscription"):
            fields["stripe_subscription_id"] = session.get("subscription")

        applied = self._upsert(user_id, event_at, fields)
        if applied:
            logger.info(f"User {user_id} upgraded to PRO (session: {session.get('id')}, customer: {session.get('customer')})")
        return EventResult(event_type=event_type, outcome="applied" if applied else "stale", user_id=user_id)

    def _subscription_updated(self, event_type: str, subscription: Mapping[str, Any], event_at: Optional[datetime]) -> EventResult:
        user_id = self._resolve_user_id(
            metadata=subscription.get("metadata"),
            customer_id=subscription.get("customer"),
        )
        provider_status = subscription.get("status")
        status = STRIPE_STATUS_MAP.get(provider_status)
        if status is None:
            raise WebhookProcessingError(f"Unknown subscription status: {provider_status}")

        fields = {
            "plan": Tier.PRO.value,
            "status": status.value,
            "stripe_subscription_id": subscription.get("id"),
            "current_period_end": self._period_end(subscription),
        }
        if subscription.get("customer"):
            fields["stripe_customer_id"] = subscription.get("customer")

        applied = self._upsert(user_id, event_at, fields)
        if applied:
            logger.info(f"Subscription {subscription.get('id')} updated for user {user_id}: status={status.value}")
        return EventResult(event_type=event_type, outcome="applied" if applied else "stale", user_id=user_id)

    def _subscription_deleted(self, event_type: str, subscription: Mapping[str, Any], event_at: Optional[datetime]) -> EventResult:
        user_id = self._resolve_user_id(
            metadata=subscription.get("metadata"),
            customer_id=subscription.get("customer"),
        )
        # Tier is kept for history; a non-active status already removes entitlement
        fields = {
            "plan": Tier.PRO.value,
            "status": SubscriptionStatus.CANCELED.value,
            "stripe_subscription_id": subscription.get("id"),
            "current_period_end": self._period_end(subscription),
        }

        applied = self._upsert(user_id, event_at, fields)
        if applied:
            logger.info(f"User {user_id} subscription cancelled ({subscription.get('id')})")
        return EventResult(event_type=event_type, outcome="applied" if applied else "stale", user_id=user_id)

    @staticmethod
    def _period_end(subscription: Mapping[str, Any]) -> Optional[datetime]:
        period_end = subscription.get("current_period_end")
        if period_end is None:
            # Newer API versions report the period per subscription item
            items = (subscription.get("items") or {}).get("data") or []
            if items:
                period_end = items[0].get("current_period_end")
        return _from_timestamp(period_end)

    def _resolve_user_id(
        self,
        metadata: Optional[Mapping[str, Any]],
        customer_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> UUID:
        """
        Finds the local user an event belongs to: metadata.user_id first,
        then the stored Stripe customer, then the checkout email.
        """
        raw_user_id = (metadata or {}).get("user_id")
        if raw_user_id:
            try:
                user_id = UUID(str(raw_user_id))
            except ValueError:
                raise WebhookProcessingError(f"Invalid user_id in metadata: {raw_user_id}")
            if self.db.query(User.id).filter(User.id == user_id).first():
                return user_id
            logger.warning(f"User from metadata not found: {user_id}")

        if customer_id:
            row = self.db.query(Subscription.user_id).filter(
                Subscription.stripe_customer_id == customer_id
            ).first()
            if row:
                return row.user_id

        if email:
            row = self.db.query(User.id).filter(
                func.lower(User.email) == email.lower()
            ).first()
            if row:
                return row.id

        raise WebhookProcessingError("Could not find user for this event")

    def _upsert(self, user_id: UUID, event_at: Optional[datetime], fields: Dict[str, Any]) -> bool:
        """
        Writes the full new state for the user's subscription row.

        Returns:
            False if the event is older than the last applied one
        """
        try:
            subscription = self._apply(user_id, event_at, fields)
            if subscription is None:
                return False
            self.db.commit()
        except IntegrityError:
            # Row inserted concurrently (unique user_id): apply as an update
            self.db.rollback()
            subscription = self._apply(user_id, event_at, fields)
            if subscription is None:
                return False
            self.db.commit()

        self.db.refresh(subscription)
        if self.notifier is not None:
            self.notifier.publish(user_id, plan_state_from_row(subscription))
        return True

    def _apply(self, user_id: UUID, event_at: Optional[datetime], fields: Dict[str, Any]) -> Optional[Subscription]:
        subscription = self.db.query(Subscription).filter(
            Subscription.user_id == user_id
        ).first()

        if subscription is not None:
            last_event_at = _as_utc(subscription.last_event_at)
            if event_at is not None and last_event_at is not None and event_at < last_event_at:
                logger.info(
                    f"Discarding stale event for user {user_id}: "
                    f"{event_at.isoformat()} < {last_event_at.isoformat()}"
                )
                return None
        else:
            subscription = Subscription(user_id=user_id)
            self.db.add(subscription)

        for key, value in fields.items():
            setattr(subscription, key, value)
        if event_at is not None:
            subscription.last_event_at = event_at

        self.db.flush()
        return subscription
