"""
Shared fixtures. Environment is set before the app is imported so that
Settings() picks up the test database and Stripe secrets.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_notes.db"
os.environ["DEV_MODE"] = "true"
os.environ["DEBUG"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_PRICE_ID_PRO"] = "price_test_pro"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["RATE_LIMIT_PER_IP"] = "100000/minute"

import uuid
import pytest
from fastapi.testclient import TestClient
from app.main import app
from app.database import SessionLocal, Base, engine
from app.dependencies.auth import get_current_user
from app.models.user import User
from app.models.subscription import Subscription


@pytest.fixture(scope="function")
def db_session():
    """Creates the schema and a database session for a test"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory creating a user, optionally with a subscription row"""
    def _make_user(email=None, plan=None, status="active", **subscription_fields):
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            password_hash="hashed_password",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)

        if plan is not None:
            db_session.add(Subscription(
                user_id=user.id,
                plan=plan,
                status=status,
                **subscription_fields
            ))
            db_session.commit()

        return user
    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user(email="test@example.com", plan="free")


@pytest.fixture
def login():
    """Authenticates subsequent requests as the given user"""
    def _login(user_id):
        app.dependency_overrides[get_current_user] = lambda: user_id
    yield _login
    app.dependency_overrides.pop(get_current_user, None)
