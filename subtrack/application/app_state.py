"""
Client application state and its reducers.

AppState is immutable; every mutation is a pure function returning a new
state. The workspace (workspace.py) owns the current value and swaps it.
"""
from dataclasses import dataclass, replace
from datetime import date

from subtrack.application.subscriptions import ALL_CATEGORIES, filter_by_search
from subtrack.domain.subscription_status import (
    STATUS_ACTIVE, STATUS_EXPIRING, STATUS_EXPIRED, classify, parse_calendar_date,
)


class Page:
    LOGIN = "login"
    REGISTER = "register"
    DASHBOARD = "dashboard"
    RENEWALS = "renewals"
    SERVICES = "services"
    SETTINGS = "settings"

    AUTHENTICATED = {DASHBOARD, RENEWALS, SERVICES, SETTINGS}


@dataclass(frozen=True)
class SubscriptionItem:
    id: str
    name: str
    category: str
    price: str  # display price, e.g. "$45.00"
    currency: str
    billing_cycle: str
    start_date: date
    expiry_date: date
    status: str
    days_remaining: int
    icon: str = "cloud"
    notes: str | None = None
    renewal_link: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "SubscriptionItem":
        return cls(
            id=data["id"],
            name=data["name"],
            category=data["category"],
            price=data["price"],
            currency=data["currency"],
            billing_cycle=data["billing_cycle"],
            start_date=parse_calendar_date(data["start_date"]),
            expiry_date=parse_calendar_date(data["expiry_date"]),
            status=data["status"],
            days_remaining=data["days_remaining"],
            icon=data.get("icon") or "cloud",
            notes=data.get("notes"),
            renewal_link=data.get("renewal_link"),
        )

    def refreshed(self, today: date) -> "SubscriptionItem":
        cls = classify(self.expiry_date, today)
        return replace(self, status=cls.status, days_remaining=cls.days_remaining)


@dataclass(frozen=True)
class ProfileState:
    id: int
    nickname: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    email_notify: bool = True
    reminder_days: int = 7


@dataclass(frozen=True)
class AppState:
    current_page: str = Page.LOGIN
    is_authenticated: bool = False
    subscriptions: tuple[SubscriptionItem, ...] = ()
    profile: ProfileState | None = None


# ============================================================================
# Reducers
# ============================================================================


def navigate(state: AppState, page: str) -> AppState:
    if page in Page.AUTHENTICATED and not state.is_authenticated:
        return replace(state, current_page=Page.LOGIN)
    return replace(state, current_page=page)


def login_succeeded(state: AppState) -> AppState:
    return replace(state, is_authenticated=True, current_page=Page.DASHBOARD)


def logged_out(state: AppState) -> AppState:
    return AppState()


def load_data(
    state: AppState,
    subscriptions: list[SubscriptionItem] | None = None,
    profile: ProfileState | None = None,
) -> AppState:
    changes = {}
    if subscriptions is not None:
        changes["subscriptions"] = tuple(subscriptions)
    if profile is not None:
        changes["profile"] = profile
    return replace(state, **changes)


def add_subscription(state: AppState, item: SubscriptionItem) -> AppState:
    return replace(state, subscriptions=(item,) + state.subscriptions)


def replace_subscription(state: AppState, old_id: str, item: SubscriptionItem) -> AppState:
    """Swap the entry with old_id (e.g. a temporary id) for item."""
    return replace(
        state,
        subscriptions=tuple(item if s.id == old_id else s for s in state.subscriptions),
    )


def update_subscription(state: AppState, item: SubscriptionItem) -> AppState:
    return replace_subscription(state, item.id, item)


def remove_subscription(state: AppState, subscription_id: str) -> AppState:
    return replace(
        state,
        subscriptions=tuple(s for s in state.subscriptions if s.id != subscription_id),
    )


def update_profile(state: AppState, **changes) -> AppState:
    if state.profile is None:
        return state
    return replace(state, profile=replace(state.profile, **changes))


# ============================================================================
# Selectors
# ============================================================================


def _statuses(state: AppState, today: date) -> list[str]:
    return [classify(s.expiry_date, today).status for s in state.subscriptions]


def urgent_count(state: AppState, today: date) -> int:
    return sum(1 for status in _statuses(state, today) if status in (STATUS_EXPIRING, STATUS_EXPIRED))


def dashboard_stats(state: AppState, today: date) -> dict:
    """Counts by status as of today; stored item status is not consulted."""
    statuses = _statuses(state, today)
    return {
        "total": len(statuses),
        STATUS_ACTIVE: statuses.count(STATUS_ACTIVE),
        STATUS_EXPIRING: statuses.count(STATUS_EXPIRING),
        STATUS_EXPIRED: statuses.count(STATUS_EXPIRED),
    }


def refresh_statuses(state: AppState, today: date) -> AppState:
    """Recompute status/days_remaining of every item for today."""
    return replace(state, subscriptions=tuple(s.refreshed(today) for s in state.subscriptions))


def filter_subscriptions(
    state: AppState,
    search: str | None = None,
    category: str = ALL_CATEGORIES,
) -> list[SubscriptionItem]:
    return filter_by_search(list(state.subscriptions), search, category)
