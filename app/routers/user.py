"""
Router for account endpoints
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.models.user import User
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/user/me", response_model=UserResponse)
async def get_me(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)


@router.delete("/user/delete-account")
async def delete_user_account(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user)
):
    """
    Deletes the account permanently.

    The subscription row, notes, folders and folder links go with it.
    The Stripe customer is left untouched.
    """
    logger.info(f"Deleting account for user: {user_id}")

    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found or already deleted"
        )

    try:
        db.delete(user)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting account {user_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting account"
        )

    logger.info(f"Account deleted: {user_id}")

    return {"message": "Account deleted"}
