"""
Wiring of the entitlement services into request handling
"""
import logging
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session
from app.database import get_db
from app.services.entitlement_gate import EntitlementGate, Deny
from app.services.plan_notifier import PlanStateNotifier
from app.services.plan_resolver import PlanResolver, ResolutionFailed
from app.services.quota_policy import ResourceKind
from app.services.resource_counter import ResourceCounter

logger = logging.getLogger(__name__)


def get_notifier(connection: HTTPConnection) -> PlanStateNotifier:
    """Notifier owned by the running app (created at startup)."""
    return connection.app.state.plan_notifier


def get_plan_resolver(db: Session = Depends(get_db)) -> PlanResolver:
    return PlanResolver(db)


def get_entitlement_gate(db: Session = Depends(get_db)) -> EntitlementGate:
    return EntitlementGate(PlanResolver(db), ResourceCounter(db))


def enforce_entitlement(gate: EntitlementGate, user_id: UUID, kind: ResourceKind) -> None:
    """
    Runs the gate before a creation write.

    Raises:
        HTTPException: 402 with an upgrade prompt when denied,
            503 when the plan or the count could not be read
    """
    try:
        decision = gate.check_and_reserve(user_id, kind)
    except ResolutionFailed as e:
        logger.error(f"Entitlement check failed for user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not verify your plan right now. Please try again."
        )

    if isinstance(decision, Deny):
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "reason": decision.reason.value,
                "message": decision.message,
                "limit": decision.limit,
                "current": decision.current,
            }
        )
