"""
Entitlement gate - checked synchronously before every note/folder creation.

The check is not a reservation: nothing is locked between the count read and
the caller's insert, so concurrent creations from one user can overshoot a
limit by at most the number of in-flight requests.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID
from app.services import quota_policy
from app.services.quota_policy import ResourceKind
from app.services.plan_resolver import PlanResolver
from app.services.resource_counter import ResourceCounter

logger = logging.getLogger(__name__)


class DenyReason(str, enum.Enum):
    NOTE_LIMIT_REACHED = "NoteLimitReached"
    FOLDER_LIMIT_REACHED = "FolderLimitReached"


_DENY_REASONS = {
    ResourceKind.NOTE: DenyReason.NOTE_LIMIT_REACHED,
    ResourceKind.FOLDER: DenyReason.FOLDER_LIMIT_REACHED,
}


@dataclass(frozen=True)
class Allow:
    allowed = True


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    limit: int
    current: int
    allowed = False

    @property
    def message(self) -> str:
        noun = "notes" if self.reason == DenyReason.NOTE_LIMIT_REACHED else "folders"
        return (
            f"You've reached the limit of {self.limit} {noun} on the Free plan. "
            f"Upgrade to Pro for unlimited {noun}."
        )


Decision = Union[Allow, Deny]


@dataclass(frozen=True)
class QuotaSnapshot:
    notes_count: int
    folders_count: int
    note_limit: Optional[int]
    folder_limit: Optional[int]


class EntitlementGate:
    def __init__(self, resolver: PlanResolver, counter: ResourceCounter):
        self.resolver = resolver
        self.counter = counter

    def check_and_reserve(self, user_id: UUID, kind: Union[ResourceKind, str]) -> Decision:
        """
        Decide whether the user may create one more resource of `kind`.

        Raises:
            ResolutionFailed: Plan or count could not be read (never mapped to a Deny)
        """
        kind = ResourceKind(kind)
        plan = self.resolver.resolve(user_id)
        current = self.counter.count(user_id, kind)

        if quota_policy.allow(plan.tier, plan.status, kind, current):
            return Allow()

        logger.info(f"Creation denied for user {user_id}: {kind.value} limit reached ({current})")
        return Deny(
            reason=_DENY_REASONS[kind],
            limit=quota_policy.limit_for(kind),
            current=current,
        )

    def snapshot(self, user_id: UUID) -> QuotaSnapshot:
        plan = self.resolver.resolve(user_id)
        return QuotaSnapshot(
            notes_count=self.counter.count(user_id, ResourceKind.NOTE),
            folders_count=self.counter.count(user_id, ResourceKind.FOLDER),
            note_limit=quota_policy.effective_limit(plan.tier, plan.status, ResourceKind.NOTE),
            folder_limit=quota_policy.effective_limit(plan.tier, plan.status, ResourceKind.FOLDER),
        )
