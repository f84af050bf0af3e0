"""
Tests for the subscription event processor
"""
import time
import pytest
from app.models.subscription import Subscription
from app.services import quota_policy
from app.services.plan_notifier import PlanStateNotifier
from app.services.plan_resolver import PlanResolver
from app.services.subscription_events import SubscriptionEventProcessor, WebhookProcessingError


def checkout_event(user_id=None, session_id="cs_test_123", customer="cus_test_123", created=None, **extra):
    session = {
        "id": session_id,
        "customer": customer,
        "metadata": {"user_id": str(user_id)} if user_id else {},
    }
    session.update(extra)
    return {
        "id": f"evt_{session_id}",
        "type": "checkout.session.completed",
        "created": created or int(time.time()),
        "data": {"object": session},
    }


def subscription_event(event_type, user_id, status="active", created=None, period_end=None):
    return {
        "id": "evt_sub",
        "type": event_type,
        "created": created or int(time.time()),
        "data": {
            "object": {
                "id": "sub_test_123",
                "customer": "cus_test_123",
                "status": status,
                "current_period_end": period_end,
                "metadata": {"user_id": str(user_id)},
            }
        },
    }


def _rows(db_session, user_id):
    db_session.expire_all()
    return db_session.query(Subscription).filter(Subscription.user_id == user_id).all()


def test_checkout_completed_upgrades_user(db_session, test_user):
    result = SubscriptionEventProcessor(db_session).process(checkout_event(test_user.id))

    assert result.outcome == "applied"
    rows = _rows(db_session, test_user.id)
    assert len(rows) == 1
    assert rows[0].plan == "pro"
    assert rows[0].status == "active"
    assert rows[0].stripe_customer_id == "cus_test_123"
    assert rows[0].stripe_session_id == "cs_test_123"


def test_checkout_completed_creates_row_when_missing(db_session, make_user):
    user = make_user()

    SubscriptionEventProcessor(db_session).process(checkout_event(user.id))

    rows = _rows(db_session, user.id)
    assert len(rows) == 1
    assert rows[0].plan == "pro"


def test_checkout_completed_twice_is_idempotent(db_session, make_user):
    user = make_user()
    event = checkout_event(user.id)
    processor = SubscriptionEventProcessor(db_session)

    processor.process(event)
    first = _rows(db_session, user.id)[0]
    first_state = (first.plan, first.status, first.stripe_customer_id, first.stripe_session_id)

    processor.process(event)
    rows = _rows(db_session, user.id)

    assert len(rows) == 1
    assert (rows[0].plan, rows[0].status, rows[0].stripe_customer_id, rows[0].stripe_session_id) == first_state


def test_stale_event_is_discarded(db_session, test_user):
    now = int(time.time())
    processor = SubscriptionEventProcessor(db_session)

    processor.process(subscription_event("customer.subscription.updated", test_user.id, status="past_due", created=now))
    result = processor.process(subscription_event("customer.subscription.updated", test_user.id, status="active", created=now - 60))

    assert result.outcome == "stale"
    assert _rows(db_session, test_user.id)[0].status == "past_due"


def test_subscription_updated_maps_status_and_period(db_session, test_user):
    period_end = int(time.time()) + 30 * 24 * 3600

    SubscriptionEventProcessor(db_session).process(
        subscription_event("customer.subscription.updated", test_user.id, status="unpaid", period_end=period_end)
    )

    row = _rows(db_session, test_user.id)[0]
    assert row.plan == "pro"
    assert row.status == "past_due"
    assert row.stripe_subscription_id == "sub_test_123"
    assert row.current_period_end is not None


def test_subscription_updated_unknown_status_is_rejected(db_session, test_user):
    with pytest.raises(WebhookProcessingError):
        SubscriptionEventProcessor(db_session).process(
            subscription_event("customer.subscription.updated", test_user.id, status="paused_forever")
        )


def test_subscription_deleted_removes_entitlement(db_session, make_user):
    user = make_user(plan="pro", status="active")

    SubscriptionEventProcessor(db_session).process(
        subscription_event("customer.subscription.deleted", user.id)
    )

    row = _rows(db_session, user.id)[0]
    assert row.plan == "pro"
    assert row.status == "canceled"
    plan = PlanResolver(db_session).resolve(user.id)
    assert not quota_policy.is_entitled(plan.tier, plan.status)


def test_payment_intent_succeeded_is_informational(db_session, make_user):
    user = make_user()
    event = {
        "id": "evt_pi",
        "type": "payment_intent.succeeded",
        "created": int(time.time()),
        "data": {"object": {"id": "pi_123", "customer": "cus_x", "metadata": {"user_id": str(user.id)}}},
    }

    result = SubscriptionEventProcessor(db_session).process(event)

    assert result.outcome == "logged"
    assert _rows(db_session, user.id) == []


def test_unknown_event_is_ignored(db_session):
    result = SubscriptionEventProcessor(db_session).process(
        {"id": "evt_x", "type": "invoice.created", "data": {"object": {}}}
    )
    assert result.outcome == "ignored"


def test_user_resolved_by_stored_customer(db_session, make_user):
    user = make_user(plan="free", stripe_customer_id="cus_known")

    result = SubscriptionEventProcessor(db_session).process(checkout_event(customer="cus_known"))

    assert result.user_id == user.id
    assert _rows(db_session, user.id)[0].plan == "pro"


def test_user_resolved_by_email(db_session, make_user):
    user = make_user(email="Someone@Example.com")

    result = SubscriptionEventProcessor(db_session).process(
        checkout_event(customer="cus_new", customer_email="someone@example.com")
    )

    assert result.user_id == user.id


def test_unresolvable_user_raises(db_session):
    with pytest.raises(WebhookProcessingError):
        SubscriptionEventProcessor(db_session).process(checkout_event(customer="cus_nobody"))


def test_applied_transition_is_published(db_session, test_user):
    notifier = PlanStateNotifier()
    queue = notifier.subscribe(test_user.id)

    SubscriptionEventProcessor(db_session, notifier).process(checkout_event(test_user.id))

    message = queue.get_nowait()
    assert message["tier"] == "pro"
    assert message["status"] == "active"
