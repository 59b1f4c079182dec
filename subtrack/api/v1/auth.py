"""
Authentication routes (register, login, logout, password)
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtrack.api.deps import get_db, get_current_user_id
from subtrack.application.accounts import RegisterUserUseCase, ChangePasswordUseCase, authenticate


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str
    password: str
    confirm_password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class PasswordRequest(BaseModel):
    new_password: str
    confirm_password: str


@router.post("/register")
def register(request: Request, req: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account + profile and log in"""
    user = RegisterUserUseCase(db).execute(req.email, req.password, req.confirm_password)
    request.session["user_id"] = user.id
    return {"user_id": user.id, "email": user.email}


@router.post("/login")
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    if not user:
        raise HTTPException(status_code=401, detail="電郵或密碼錯誤")
    request.session["user_id"] = user.id
    return {"user_id": user.id, "email": user.email}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"status": "logged_out"}


@router.post("/password")
def change_password(
    req: PasswordRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    ChangePasswordUseCase(db).execute(user_id, req.new_password, req.confirm_password)
    return {"status": "updated"}
