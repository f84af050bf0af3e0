"""
FastAPI dependencies
"""
from app.dependencies.auth import get_current_user
from app.dependencies.entitlements import (
    get_notifier,
    get_plan_resolver,
    get_entitlement_gate,
    enforce_entitlement,
)

__all__ = [
    "get_current_user",
    "get_notifier",
    "get_plan_resolver",
    "get_entitlement_gate",
    "enforce_entitlement",
]
