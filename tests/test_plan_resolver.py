"""
Tests for plan resolution, default provisioning and resource counting
"""
import uuid
import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError
from app.models.subscription import Subscription, Tier, SubscriptionStatus
from app.models.note import Note
from app.models.folder import Folder
from app.services.plan_resolver import (
    PlanResolver,
    ResolutionFailed,
    provision_default_subscription,
)
from app.services.resource_counter import ResourceCounter, CountFailed


def test_resolve_without_row_returns_free_and_writes_nothing(db_session, make_user):
    user = make_user()

    plan = PlanResolver(db_session).resolve(user.id)

    assert plan.tier == Tier.FREE
    assert plan.status == SubscriptionStatus.ACTIVE
    assert db_session.query(Subscription).filter(Subscription.user_id == user.id).count() == 0


def test_resolve_returns_stored_state_verbatim(db_session, make_user):
    user = make_user(plan="pro", status="past_due")

    plan = PlanResolver(db_session).resolve(user.id)

    assert plan.tier == Tier.PRO
    assert plan.status == SubscriptionStatus.PAST_DUE


def test_resolve_rejects_unknown_stored_values(db_session, make_user):
    user = make_user(plan="enterprise")

    with pytest.raises(ResolutionFailed):
        PlanResolver(db_session).resolve(user.id)


def test_resolve_surfaces_storage_failure():
    db = MagicMock()
    db.query.return_value.filter.return_value.first.side_effect = OperationalError("SELECT", {}, Exception("down"))

    with pytest.raises(ResolutionFailed):
        PlanResolver(db).resolve(uuid.uuid4())


def test_provision_is_idempotent(db_session, make_user):
    user = make_user()

    first = provision_default_subscription(db_session, user.id)
    second = provision_default_subscription(db_session, user.id)

    assert first.id == second.id
    assert first.plan == "free"
    assert first.status == "active"
    assert db_session.query(Subscription).filter(Subscription.user_id == user.id).count() == 1


def test_provision_keeps_existing_pro_row(db_session, make_user):
    user = make_user(plan="pro")

    subscription = provision_default_subscription(db_session, user.id)

    assert subscription.plan == "pro"


def test_count_notes_excludes_trashed(db_session, make_user):
    user = make_user()
    other = make_user()
    db_session.add_all([Note(user_id=user.id, title=f"n{i}") for i in range(3)])
    db_session.add(Note(user_id=user.id, title="gone", is_trashed=True))
    db_session.add(Note(user_id=user.id, title="kept", is_archived=True))
    db_session.add(Note(user_id=other.id, title="not mine"))
    db_session.commit()

    assert ResourceCounter(db_session).count(user.id, "note") == 4


def test_count_folders(db_session, make_user):
    user = make_user()
    db_session.add_all([Folder(user_id=user.id, name=f"f{i}") for i in range(2)])
    db_session.commit()

    assert ResourceCounter(db_session).count(user.id, "folder") == 2


def test_count_failure_is_a_resolution_failure():
    db = MagicMock()
    db.query.return_value.filter.return_value.scalar.side_effect = OperationalError("SELECT", {}, Exception("down"))

    with pytest.raises(CountFailed) as exc_info:
        ResourceCounter(db).count(uuid.uuid4(), "folder")

    assert isinstance(exc_info.value, ResolutionFailed)
