from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from uuid import UUID
import uuid
import logging
from app.database import get_db
from app.models.user import User
from app.config import settings
from app.services.plan_resolver import provision_default_subscription
from app.services.supabase_auth import validate_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

DEV_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
DEV_USER_EMAIL = "dev@example.com"


def parse_raw_auth_header(request: Request) -> Optional[str]:
    """Returns the raw token when Authorization does not follow 'Bearer <token>'."""
    header = request.headers.get("authorization")
    if not header:
        return None
    header = header.strip()
    # "Bearer token", "bearer token" or just "token"
    parts = header.split()
    if len(parts) == 1:
        return parts[0]
    if len(parts) >= 2:
        return parts[1]
    return None


def get_or_create_user_from_supabase(
    db: Session,
    supabase_sub: str,
    email: str
) -> User:
    """
    Finds or creates the local user for a Supabase identity.

    First login also provisions the default free subscription.

    Args:
        db: Database session
        supabase_sub: Supabase user ID (JWT "sub")
        email: User email

    Returns:
        User: Existing or newly created user
    """
    user = db.query(User).filter(User.email == email).first()

    if user:
        logger.debug(f"User found by email: {user.id}")
        return user

    try:
        user_id = UUID(supabase_sub)
    except (ValueError, AttributeError, TypeError):
        user_id = uuid.uuid4()

    user = User(
        id=user_id,
        email=email,
        password_hash="supabase_auth",  # Placeholder, credentials live in Supabase Auth
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    provision_default_subscription(db, user.id)

    logger.info(f"User created from Supabase token: {user.id} ({email})")
    return user


def _get_or_create_dev_user(db: Session) -> User:
    user = db.query(User).filter(User.email == DEV_USER_EMAIL).first()
    if not user:
        user = User(
            id=DEV_USER_ID,
            email=DEV_USER_EMAIL,
            password_hash="dev",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        provision_default_subscription(db, user.id)
    return user


async def authenticate_token(db: Session, token: Optional[str]) -> UUID:
    """
    Resolves a bearer token to a local user ID.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing"
        )

    # Development token "test"
    if settings.DEV_MODE and token == "test":
        dev_user = _get_or_create_dev_user(db)
        logger.debug(f"Authenticated user (dev token): {dev_user.id}")
        return dev_user.id

    try:
        payload = await validate_token(token)

        supabase_sub = payload.get("sub")
        email = payload.get("email")

        if not supabase_sub:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing 'sub' claim"
            )

        if not email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing 'email' claim"
            )

        user = get_or_create_user_from_supabase(db, supabase_sub, email)

        logger.debug(f"Authenticated user (Supabase): {user.id} ({email})")
        return user.id

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during authentication: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed"
        )


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    cred: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UUID:
    """
    Dependency for authenticated routes.
    - Accepts 'Authorization: Bearer <token>' and 'Authorization: <token>'
    - Accepts the 'test' token when DEV_MODE is on
    - Validates Supabase JWTs and finds/creates the local user
    """
    token = cred.credentials if cred else parse_raw_auth_header(request)
    return await authenticate_token(db, token)
