"""
Dashboard read service: status counters and the renewal overview.
"""
from datetime import date

from sqlalchemy.orm import Session

from subtrack.application.subscriptions import (
    count_by_status, refresh_derived_fields, subscription_to_dict,
)
from subtrack.infrastructure.db.models import SubscriptionModel, ProfileModel


def display_name(profile: ProfileModel | None) -> str:
    """Nickname, else the local part of the email, else a generic greeting."""
    if profile is not None:
        if profile.nickname:
            return profile.nickname
        if profile.email:
            return profile.email.split("@")[0]
    return "用戶"


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def get_dashboard(self, user_id: int, today: date) -> dict:
        subs = (
            self.db.query(SubscriptionModel)
            .filter(SubscriptionModel.user_id == user_id)
            .order_by(SubscriptionModel.expiry_date.asc())
            .all()
        )
        refresh_derived_fields(self.db, subs, today)
        profile = self.db.get(ProfileModel, user_id)

        return {
            "display_name": display_name(profile),
            "counts": count_by_status(subs),
            "subscriptions": [subscription_to_dict(s) for s in subs],
        }
