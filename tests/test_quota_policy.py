"""
Tests for the quota policy
"""
import pytest
from app.services import quota_policy
from app.services.quota_policy import (
    FREE_NOTE_LIMIT,
    FREE_FOLDER_LIMIT,
    ResourceKind,
    allow,
    is_entitled,
    effective_limit,
)

NON_ACTIVE = ["canceled", "incomplete", "past_due"]
COUNTS = [0, 1, 4, 5, 6, 19, 20, 21, 100, 10_000]


def test_limits_are_canonical():
    assert FREE_NOTE_LIMIT == 20
    assert FREE_FOLDER_LIMIT == 5
    assert quota_policy.limit_for("note") == 20
    assert quota_policy.limit_for(ResourceKind.FOLDER) == 5


@pytest.mark.parametrize("count", COUNTS)
def test_free_tier_notes(count):
    assert allow("free", "active", "note", count) == (count < 20)


@pytest.mark.parametrize("count", COUNTS)
def test_free_tier_folders(count):
    assert allow("free", "active", "folder", count) == (count < 5)


@pytest.mark.parametrize("count", COUNTS)
@pytest.mark.parametrize("kind", ["note", "folder"])
def test_active_pro_is_unlimited(kind, count):
    assert allow("pro", "active", kind, count) is True


@pytest.mark.parametrize("status", NON_ACTIVE)
@pytest.mark.parametrize("count", COUNTS)
@pytest.mark.parametrize("kind", ["note", "folder"])
def test_non_active_pro_degrades_to_free(status, kind, count):
    assert allow("pro", status, kind, count) == allow("free", "active", kind, count)


def test_accepts_enum_members():
    from app.models.subscription import Tier, SubscriptionStatus

    assert is_entitled(Tier.PRO, SubscriptionStatus.ACTIVE)
    assert not is_entitled(Tier.FREE, SubscriptionStatus.ACTIVE)
    assert allow(Tier.FREE, SubscriptionStatus.ACTIVE, ResourceKind.NOTE, 19)
    assert not allow(Tier.FREE, SubscriptionStatus.ACTIVE, ResourceKind.NOTE, 20)


def test_effective_limit():
    assert effective_limit("pro", "active", "note") is None
    assert effective_limit("pro", "past_due", "note") == 20
    assert effective_limit("free", "active", "folder") == 5
