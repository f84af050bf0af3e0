"""
Router for plan status, quota snapshot and default provisioning
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.dependencies.entitlements import get_entitlement_gate
from app.models.subscription import Subscription
from app.schemas.subscription import (
    QuotaSnapshotResponse,
    SubscriptionStatusResponse,
    ProvisionResponse,
)
from app.services import quota_policy
from app.services.entitlement_gate import EntitlementGate
from app.services.plan_resolver import ResolutionFailed, provision_default_subscription

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    gate: EntitlementGate = Depends(get_entitlement_gate)
):
    """
    Returns the user's plan together with live note/folder counts and limits.
    Limits are null when unlimited.
    """
    try:
        plan = gate.resolver.resolve(user_id)
        snapshot = gate.snapshot(user_id)
    except ResolutionFailed as e:
        logger.error(f"Error resolving plan for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load your plan right now"
        )

    subscription = db.query(Subscription).filter(Subscription.user_id == user_id).first()

    return SubscriptionStatusResponse(
        plan=plan.tier.value,
        status=plan.status.value,
        is_entitled=quota_policy.is_entitled(plan.tier, plan.status),
        period_end=plan.period_end,
        payment_status=subscription.payment_status if subscription else None,
        quota=QuotaSnapshotResponse(
            notes_count=snapshot.notes_count,
            folders_count=snapshot.folders_count,
            note_limit=snapshot.note_limit,
            folder_limit=snapshot.folder_limit,
        ),
    )


@router.post("/subscription/provision", response_model=ProvisionResponse)
async def provision_subscription(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Creates the default free subscription if missing. Safe to call repeatedly.
    """
    try:
        existed = db.query(Subscription.id).filter(Subscription.user_id == user_id).first() is not None
        subscription = provision_default_subscription(db, user_id)

        return ProvisionResponse(
            created=not existed,
            plan=subscription.plan,
            status=subscription.status,
        )

    except Exception as e:
        logger.error(f"Error provisioning subscription: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error provisioning subscription"
        )
