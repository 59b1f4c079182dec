"""
Subscription API endpoints
"""
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from subtrack.api.deps import get_db, get_current_user_id
from subtrack.application.dashboard import DashboardService
from subtrack.application.subscriptions import (
    CreateSubscriptionUseCase, UpdateSubscriptionUseCase, DeleteSubscriptionUseCase,
    list_subscriptions, list_urgent_subscriptions, subscription_to_dict,
)
from subtrack.utils.clock import local_today


router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


# === Request/Response models ===

class SubscriptionRequest(BaseModel):
    name: str
    expiry_date: str  # YYYY-MM-DD
    category: str | None = None
    price: str = "0"
    currency: str = "$"
    billing_cycle: Literal["monthly", "yearly"] = "monthly"
    start_date: str | None = None
    icon: str | None = None
    notes: str | None = None
    renewal_link: str | None = None


class SubscriptionResponse(BaseModel):
    id: str
    name: str
    category: str
    price: str  # display price, currency included
    currency: str
    billing_cycle: str
    start_date: str
    expiry_date: str
    status: str
    days_remaining: int
    icon: str
    notes: str | None
    renewal_link: str | None


class DashboardResponse(BaseModel):
    display_name: str
    counts: dict[str, int]
    subscriptions: list[SubscriptionResponse]


# === Endpoints ===

@router.get("/", response_model=list[SubscriptionResponse])
def list_all(
    q: str | None = None,
    category: str | None = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """All subscriptions ordered by expiry date"""
    today = local_today()
    subs = list_subscriptions(db, user_id, search=q, category=category)
    return [subscription_to_dict(s, today) for s in subs]


@router.get("/urgent", response_model=list[SubscriptionResponse])
def list_urgent(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Expiring and expired subscriptions (renewal alerts)"""
    subs = list_urgent_subscriptions(db, user_id, local_today())
    return [subscription_to_dict(s) for s in subs]


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return DashboardService(db).get_dashboard(user_id, local_today())


@router.post("/", response_model=SubscriptionResponse)
def create(
    req: SubscriptionRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a subscription; status/days_remaining are computed from expiry_date"""
    sub = CreateSubscriptionUseCase(db).execute(user_id=user_id, **req.model_dump())
    return subscription_to_dict(sub)


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
def update(
    subscription_id: str,
    req: SubscriptionRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    sub = UpdateSubscriptionUseCase(db).execute(subscription_id, user_id, **req.model_dump())
    return subscription_to_dict(sub)


@router.delete("/{subscription_id}")
def delete(
    subscription_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    DeleteSubscriptionUseCase(db).execute(subscription_id, user_id)
    return {"status": "deleted"}
