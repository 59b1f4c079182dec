"""
Subscription use cases: CRUD of tracked services plus the derived-field write-back.

Every write recomputes status/days_remaining from expiry_date. Read paths that
act on status (dashboard, urgent list, reminder batch) call
refresh_derived_fields() first, so a stale stored value is never trusted.
"""
from datetime import date
from sqlalchemy.orm import Session

from subtrack.domain.subscription_status import (
    STATUS_ACTIVE, STATUS_EXPIRING, STATUS_EXPIRED,
    InvalidDateError, classify, parse_calendar_date,
)
from subtrack.infrastructure.db.models import SubscriptionModel
from subtrack.utils.clock import local_today
from subtrack.utils.validation import normalize_price, format_price, clean_optional_text

DEFAULT_CATEGORY = "雲端服務"
DEFAULT_CURRENCY = "$"
DEFAULT_ICON = "cloud"
BILLING_CYCLES = ("monthly", "yearly")
ALL_CATEGORIES = "全部"


class SubscriptionValidationError(ValueError):
    pass


def _require_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise SubscriptionValidationError("服務名稱不能為空")
    return name


def _require_expiry(value) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise SubscriptionValidationError("到期日不能為空")
    try:
        return parse_calendar_date(value)
    except InvalidDateError as e:
        raise SubscriptionValidationError(str(e))


def _require_billing_cycle(value: str | None) -> str:
    cycle = value or "monthly"
    if cycle not in BILLING_CYCLES:
        raise SubscriptionValidationError(f"不支援的計費週期: {cycle}")
    return cycle


def _optional_date(value, default: date) -> date:
    if not value:
        return default
    try:
        return parse_calendar_date(value)
    except InvalidDateError as e:
        raise SubscriptionValidationError(str(e))


def apply_derived_fields(sub: SubscriptionModel, today: date) -> bool:
    """Write classify(expiry_date, today) into the stored columns. Returns True if anything changed."""
    cls = classify(sub.expiry_date, today)
    changed = sub.status != cls.status or sub.days_remaining != cls.days_remaining
    sub.status = cls.status
    sub.days_remaining = cls.days_remaining
    return changed


def refresh_derived_fields(db: Session, subs: list[SubscriptionModel], today: date) -> int:
    """Bring stored status/days_remaining up to date for today. Returns number of rows rewritten."""
    changed = sum(1 for s in subs if apply_derived_fields(s, today))
    if changed:
        db.commit()
    return changed


def subscription_to_dict(sub: SubscriptionModel, today: date | None = None) -> dict:
    """API/view representation. Derived fields are recomputed when today is given."""
    if today is not None:
        cls = classify(sub.expiry_date, today)
        status, days_remaining = cls.status, cls.days_remaining
    else:
        status, days_remaining = sub.status, sub.days_remaining
    return {
        "id": sub.id,
        "name": sub.name,
        "category": sub.category,
        "price": format_price(sub.currency, sub.price),
        "currency": sub.currency,
        "billing_cycle": sub.billing_cycle,
        "start_date": sub.start_date.isoformat(),
        "expiry_date": sub.expiry_date.isoformat(),
        "status": status,
        "days_remaining": days_remaining,
        "icon": sub.icon,
        "notes": sub.notes,
        "renewal_link": sub.renewal_link,
    }


# ============================================================================
# CRUD
# ============================================================================


class CreateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        name: str,
        expiry_date,
        category: str | None = None,
        price: str | None = None,
        currency: str | None = None,
        billing_cycle: str = "monthly",
        start_date=None,
        icon: str | None = None,
        notes: str | None = None,
        renewal_link: str | None = None,
        subscription_id: str | None = None,
        today: date | None = None,
    ) -> SubscriptionModel:
        name = _require_name(name)
        expiry = _require_expiry(expiry_date)
        cycle = _require_billing_cycle(billing_cycle)
        if today is None:
            today = local_today()
        start = _optional_date(start_date, today)

        sub = SubscriptionModel(
            user_id=user_id,
            name=name,
            category=(category or "").strip() or DEFAULT_CATEGORY,
            price=normalize_price(price),
            currency=currency or DEFAULT_CURRENCY,
            billing_cycle=cycle,
            start_date=start,
            expiry_date=expiry,
            icon=icon or DEFAULT_ICON,
            notes=clean_optional_text(notes),
            renewal_link=clean_optional_text(renewal_link),
        )
        if subscription_id:
            sub.id = subscription_id
        apply_derived_fields(sub, today)
        self.db.add(sub)
        self.db.flush()
        self.db.commit()
        return sub


class UpdateSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, subscription_id: str, user_id: int, today: date | None = None, **changes) -> SubscriptionModel:
        sub = get_owned_subscription(self.db, subscription_id, user_id)

        if "name" in changes:
            sub.name = _require_name(changes["name"])
        if "expiry_date" in changes:
            sub.expiry_date = _require_expiry(changes["expiry_date"])
        if "category" in changes:
            sub.category = (changes["category"] or "").strip() or DEFAULT_CATEGORY
        if "price" in changes:
            sub.price = normalize_price(changes["price"])
        if "currency" in changes:
            sub.currency = changes["currency"] or DEFAULT_CURRENCY
        if "billing_cycle" in changes:
            sub.billing_cycle = _require_billing_cycle(changes["billing_cycle"])
        if "start_date" in changes:
            sub.start_date = _optional_date(changes["start_date"], sub.start_date)
        if "icon" in changes:
            sub.icon = changes["icon"] or DEFAULT_ICON
        if "notes" in changes:
            sub.notes = clean_optional_text(changes["notes"])
        if "renewal_link" in changes:
            sub.renewal_link = clean_optional_text(changes["renewal_link"])

        apply_derived_fields(sub, today or local_today())
        self.db.commit()
        return sub


class DeleteSubscriptionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, subscription_id: str, user_id: int) -> None:
        sub = get_owned_subscription(self.db, subscription_id, user_id)
        self.db.delete(sub)
        self.db.commit()


def get_owned_subscription(db: Session, subscription_id: str, user_id: int) -> SubscriptionModel:
    sub = db.query(SubscriptionModel).filter(
        SubscriptionModel.id == subscription_id,
        SubscriptionModel.user_id == user_id,
    ).first()
    if not sub:
        raise SubscriptionValidationError("找不到此服務")
    return sub


# ============================================================================
# Queries
# ============================================================================


def list_subscriptions(
    db: Session,
    user_id: int,
    search: str | None = None,
    category: str | None = None,
) -> list[SubscriptionModel]:
    """All of a user's subscriptions ordered by expiry date, optionally filtered."""
    subs = db.query(SubscriptionModel).filter(
        SubscriptionModel.user_id == user_id,
    ).order_by(SubscriptionModel.expiry_date.asc()).all()
    return filter_by_search(subs, search, category)


def filter_by_search(items: list, search: str | None, category: str | None) -> list:
    """Case-insensitive match on name or category; ALL_CATEGORIES disables the category filter."""
    term = (search or "").strip().lower()
    result = []
    for s in items:
        if term and term not in s.name.lower() and term not in s.category.lower():
            continue
        if category and category != ALL_CATEGORIES and s.category != category:
            continue
        result.append(s)
    return result


def list_urgent_subscriptions(db: Session, user_id: int, today: date) -> list[SubscriptionModel]:
    """Expiring and expired subscriptions, soonest (most overdue) first."""
    subs = db.query(SubscriptionModel).filter(SubscriptionModel.user_id == user_id).all()
    refresh_derived_fields(db, subs, today)
    urgent = [s for s in subs if s.status in (STATUS_EXPIRING, STATUS_EXPIRED)]
    return sorted(urgent, key=lambda s: s.days_remaining)


def count_by_status(subs: list) -> dict:
    counts = {"total": len(subs), STATUS_ACTIVE: 0, STATUS_EXPIRING: 0, STATUS_EXPIRED: 0}
    for s in subs:
        counts[s.status] += 1
    return counts
