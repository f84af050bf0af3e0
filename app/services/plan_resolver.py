"""
Plan resolver - reads a user's plan tier and status from user_subscriptions
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.subscription import Subscription, Tier, SubscriptionStatus

logger = logging.getLogger(__name__)


class EntitlementError(Exception):
    """Base error for the entitlement subsystem"""
    pass


class ResolutionFailed(EntitlementError):
    """Plan state could not be read; callers must not treat this as a denial"""
    pass


@dataclass(frozen=True)
class PlanState:
    tier: Tier
    status: SubscriptionStatus
    period_end: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "status": self.status.value,
            "period_end": self.period_end.isoformat() if self.period_end else None,
        }


DEFAULT_PLAN = PlanState(tier=Tier.FREE, status=SubscriptionStatus.ACTIVE)


def plan_state_from_row(subscription: Subscription) -> PlanState:
    """
    Converts a stored row to PlanState.

    Raises:
        ValueError: If plan or status hold an unknown value
    """
    return PlanState(
        tier=Tier(subscription.plan),
        status=SubscriptionStatus(subscription.status),
        period_end=subscription.current_period_end,
    )


class PlanResolver:
    """
    Resolves the effective plan of a user. Read-only: a missing row resolves
    to the free plan without being persisted.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, user_id: UUID) -> PlanState:
        try:
            subscription = self.db.query(Subscription).filter(
                Subscription.user_id == user_id
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read subscription for user {user_id}: {e}")
            raise ResolutionFailed(f"Could not read subscription for user {user_id}") from e

        if subscription is None:
            return DEFAULT_PLAN

        try:
            return plan_state_from_row(subscription)
        except ValueError as e:
            logger.error(f"Invalid subscription state for user {user_id}: plan={subscription.plan}, status={subscription.status}")
            raise ResolutionFailed(f"Invalid subscription state for user {user_id}") from e


def provision_default_subscription(db: Session, user_id: UUID) -> Subscription:
    """
    Creates the default free subscription if the user has none.

    Idempotent: a concurrent provisioning that wins the unique constraint on
    user_id makes this call return the row it created.

    Args:
        db: Database session
        user_id: User ID

    Returns:
        Subscription: Existing or newly created row
    """
    existing = db.query(Subscription).filter(Subscription.user_id == user_id).first()
    if existing:
        return existing

    subscription = Subscription(
        user_id=user_id,
        plan=Tier.FREE.value,
        status=SubscriptionStatus.ACTIVE.value,
    )
    db.add(subscription)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Default subscription for user {user_id} created concurrently, reusing it")
        return db.query(Subscription).filter(Subscription.user_id == user_id).one()

    db.refresh(subscription)
    logger.info(f"Default subscription provisioned for user {user_id}")
    return subscription
