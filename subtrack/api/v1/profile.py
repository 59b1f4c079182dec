"""
Profile, notification settings and avatar endpoints
"""
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtrack.api.deps import get_db, get_current_user_id
from subtrack.application.profile import (
    UpdateProfileUseCase, UpdateNotificationSettingsUseCase,
    UploadAvatarUseCase, DeleteAvatarUseCase,
    get_profile, profile_to_dict,
)
from subtrack.infrastructure.storage.avatars import get_avatar_storage


router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


class ProfileResponse(BaseModel):
    id: int
    nickname: str | None
    email: str | None
    avatar_url: str | None
    email_notify: bool
    reminder_days: int


class ProfileUpdateRequest(BaseModel):
    nickname: str | None = None
    email: str | None = None


class SettingsRequest(BaseModel):
    email_notify: bool
    reminder_days: int


@router.get("/", response_model=ProfileResponse)
def read_profile(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return profile_to_dict(get_profile(db, user_id))


@router.patch("/", response_model=ProfileResponse)
def update_profile(
    req: ProfileUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Update nickname / email (only the fields sent)"""
    profile = UpdateProfileUseCase(db).execute(user_id, **req.model_dump(exclude_unset=True))
    return profile_to_dict(profile)


@router.put("/settings", response_model=ProfileResponse)
def update_settings(
    req: SettingsRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Reminder opt-in and lead time"""
    profile = UpdateNotificationSettingsUseCase(db).execute(
        user_id, email_notify=req.email_notify, reminder_days=req.reminder_days,
    )
    return profile_to_dict(profile)


@router.post("/avatar")
def upload_avatar(
    file: UploadFile = File(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage=Depends(get_avatar_storage),
):
    data = file.file.read()
    url = UploadAvatarUseCase(db, storage).execute(
        user_id, file.filename or "avatar", data, file.content_type,
    )
    return {"avatar_url": url}


@router.delete("/avatar")
def delete_avatar(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage=Depends(get_avatar_storage),
):
    DeleteAvatarUseCase(db, storage).execute(user_id)
    return {"status": "deleted"}
