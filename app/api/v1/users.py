from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_active_user
from app.models.user import User
from app.schemas.user import UserProfileResponse, UserUpdate
from app.utils.response import success

router = APIRouter()


@router.get("/me", response_model=dict)
def get_current_user_profile(current_user: User = Depends(get_current_active_user)):
    """Current user with their addresses"""
    profile = UserProfileResponse.model_validate(current_user)
    return success(data=profile.model_dump(), message="User profile retrieved")


@router.put("/me", response_model=dict)
def update_user_profile(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    if user_update.name:
        current_user.name = user_update.name.strip()

    if user_update.phone:
        existing_phone = db.query(User).filter(
            User.phone == user_update.phone,
            User.id != current_user.id
        ).first()

        if existing_phone:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Phone number already in use"
            )

        current_user.phone = user_update.phone

    db.commit()
    db.refresh(current_user)

    profile = UserProfileResponse.model_validate(current_user)
    return success(data=profile.model_dump(), message="User profile updated")
