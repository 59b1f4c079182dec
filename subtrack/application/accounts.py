"""
Account use cases: registration (user + profile) and password change.
"""
from sqlalchemy.orm import Session

from subtrack.auth import MIN_PASSWORD_LENGTH, get_user_by_email, hash_password, verify_password
from subtrack.application.profile import DEFAULT_REMINDER_DAYS
from subtrack.infrastructure.db.models import ProfileModel, User


class AuthValidationError(ValueError):
    pass


def validate_new_password(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise AuthValidationError("兩次輸入的密碼不一致")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthValidationError(f"密碼長度至少需要 {MIN_PASSWORD_LENGTH} 個字符")


class RegisterUserUseCase:
    """Creates the login identity and its profile in one transaction."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str, password: str, confirm_password: str) -> User:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthValidationError("電郵地址格式錯誤")
        validate_new_password(password, confirm_password)
        if get_user_by_email(self.db, email):
            raise AuthValidationError("此電郵地址已被註冊")

        user = User(email=email, password_hash=hash_password(password))
        self.db.add(user)
        self.db.flush()
        self.db.add(ProfileModel(
            id=user.id,
            email=email,
            email_notify=True,
            reminder_days=DEFAULT_REMINDER_DAYS,
        ))
        self.db.commit()
        return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email or "")
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


class ChangePasswordUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, new_password: str, confirm_password: str) -> None:
        validate_new_password(new_password, confirm_password)
        user = self.db.get(User, user_id)
        if user is None:
            raise AuthValidationError("用戶不存在")
        user.password_hash = hash_password(new_password)
        self.db.commit()
