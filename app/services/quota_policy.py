"""
Quota policy - pure rules deciding whether a user may create another note or folder.

This module is the only place holding the free-tier limits; every other
surface (deny messages, the quota snapshot) reads them from here.
"""
import enum
from typing import Optional, Union

from app.models.subscription import Tier, SubscriptionStatus

# Free-tier ceilings
FREE_NOTE_LIMIT = 20
FREE_FOLDER_LIMIT = 5


class ResourceKind(str, enum.Enum):
    NOTE = "note"
    FOLDER = "folder"


_LIMITS = {
    ResourceKind.NOTE: FREE_NOTE_LIMIT,
    ResourceKind.FOLDER: FREE_FOLDER_LIMIT,
}


def _value(member: Union[enum.Enum, str]) -> str:
    return member.value if isinstance(member, enum.Enum) else member


def is_entitled(tier: Union[Tier, str], status: Union[SubscriptionStatus, str]) -> bool:
    """Paid entitlement holds only for an active pro plan."""
    return _value(tier) == Tier.PRO.value and _value(status) == SubscriptionStatus.ACTIVE.value


def limit_for(kind: Union[ResourceKind, str]) -> int:
    return _LIMITS[ResourceKind(_value(kind))]


def effective_limit(
    tier: Union[Tier, str],
    status: Union[SubscriptionStatus, str],
    kind: Union[ResourceKind, str],
) -> Optional[int]:
    """
    Limit that applies to the given plan, or None when unlimited.
    """
    if is_entitled(tier, status):
        return None
    return limit_for(kind)


def allow(
    tier: Union[Tier, str],
    status: Union[SubscriptionStatus, str],
    kind: Union[ResourceKind, str],
    current_count: int,
) -> bool:
    """
    Decide whether one more resource of `kind` may be created.

    Args:
        tier: Plan tier ("free" | "pro")
        status: Subscription status
        kind: "note" | "folder"
        current_count: Live count of the user's resources of that kind

    Returns:
        True if the creation is allowed
    """
    limit = effective_limit(tier, status, kind)
    if limit is None:
        return True
    return current_count < limit
