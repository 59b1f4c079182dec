"""
Profile service: display fields, reminder preferences and avatar.
"""
import logging
import re

from sqlalchemy.orm import Session

from subtrack.infrastructure.db.models import ProfileModel
from subtrack.infrastructure.storage.avatars import AvatarStorageError
from subtrack.utils.validation import clean_optional_text

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = 7
MAX_REMINDER_DAYS = 365
MAX_AVATAR_BYTES = 5 * 1024 * 1024


class ProfileValidationError(ValueError):
    pass


def profile_to_dict(profile: ProfileModel) -> dict:
    return {
        "id": profile.id,
        "nickname": profile.nickname,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
        "email_notify": profile.email_notify,
        "reminder_days": profile.reminder_days,
    }


def get_profile(db: Session, user_id: int) -> ProfileModel:
    profile = db.get(ProfileModel, user_id)
    if profile is None:
        raise ProfileValidationError("找不到用戶資料")
    return profile


class UpdateProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, **changes) -> ProfileModel:
        profile = get_profile(self.db, user_id)
        if "nickname" in changes:
            profile.nickname = clean_optional_text(changes["nickname"])
        if "email" in changes:
            email = clean_optional_text(changes["email"])
            if email is not None and "@" not in email:
                raise ProfileValidationError("電郵地址格式錯誤")
            profile.email = email
        self.db.commit()
        return profile


class UpdateNotificationSettingsUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, email_notify: bool, reminder_days: int) -> ProfileModel:
        if not isinstance(reminder_days, int) or isinstance(reminder_days, bool):
            raise ProfileValidationError("提醒天數必須為整數")
        if reminder_days < 1 or reminder_days > MAX_REMINDER_DAYS:
            raise ProfileValidationError(f"提醒天數必須介於 1 至 {MAX_REMINDER_DAYS} 天")

        profile = get_profile(self.db, user_id)
        profile.email_notify = bool(email_notify)
        profile.reminder_days = reminder_days
        self.db.commit()
        return profile


class UploadAvatarUseCase:
    """Store the image as <user_id>/avatar.<ext> and point the profile at it."""

    def __init__(self, db: Session, storage):
        self.db = db
        self.storage = storage

    def execute(self, user_id: int, filename: str, data: bytes, content_type: str | None = None) -> str:
        if not data:
            raise ProfileValidationError("檔案不能為空")
        if len(data) > MAX_AVATAR_BYTES:
            raise ProfileValidationError("檔案過大")
        if content_type and not content_type.startswith("image/"):
            raise ProfileValidationError("只接受圖片檔案")

        profile = get_profile(self.db, user_id)
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        ext = re.sub(r"[^a-z0-9]", "", ext) or "png"
        path = f"{user_id}/avatar.{ext}"
        url = self.storage.upload(path, data, content_type)
        profile.avatar_url = url
        self.db.commit()

        # previous avatar stored under another extension
        try:
            self.storage.remove(str(user_id), keep=path)
        except AvatarStorageError:
            logger.exception("Old avatar cleanup failed for user_id=%s", user_id)
        return url


class DeleteAvatarUseCase:
    def __init__(self, db: Session, storage):
        self.db = db
        self.storage = storage

    def execute(self, user_id: int) -> None:
        profile = get_profile(self.db, user_id)
        try:
            removed = self.storage.remove(str(user_id))
        except AvatarStorageError:
            logger.exception("Avatar removal failed for user_id=%s", user_id)
            raise
        logger.info("Removed %d avatar file(s) for user_id=%s", removed, user_id)
        profile.avatar_url = None
        self.db.commit()
