"""
Renewal reminder batch: one digest email per opted-in user.

Triggered externally (POST /api/v1/reminders/run or run_reminders.py), once
per run:
  - abort the whole run if email credentials are missing
  - for each profile with email_notify=True and an email address:
      refresh derived fields, select due subscriptions with the user's own
      reminder_days, skip users with nothing due, send the digest
  - a failure for one user is logged and recorded, the next user is processed

Not re-entrant: overlapping runs may send duplicate digests.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subtrack.config import Settings, get_settings
from subtrack.application.email_service import EmailResult, send_email
from subtrack.application.subscriptions import refresh_derived_fields
from subtrack.domain.reminder_selection import DueItem, select_due_subscriptions
from subtrack.infrastructure.db.models import ProfileModel, SubscriptionModel
from subtrack.utils.clock import local_today
from subtrack.utils.validation import format_price

logger = logging.getLogger(__name__)

_templates_dir = Path(__file__).parent.parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(_templates_dir)),
    autoescape=select_autoescape(["html"]),
)


class ReminderConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Digest:
    recipient: str
    subject: str
    html: str
    expired_count: int
    expiring_count: int
    subscription_ids: list[str]


@dataclass
class UserSendOutcome:
    user_id: int
    email: str
    services_count: int
    email_sent: bool
    error: str | None = None


@dataclass
class ReminderRunSummary:
    success: bool
    processed_users: int = 0
    results: list[UserSendOutcome] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "processed_users": self.processed_users,
            "results": [
                {
                    "user_id": r.user_id,
                    "email": r.email,
                    "services_count": r.services_count,
                    "email_sent": r.email_sent,
                    "error": r.error,
                }
                for r in self.results
            ],
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Digest composition
# ---------------------------------------------------------------------------

def _status_label(item: DueItem) -> str:
    if item.is_expired:
        return "已過期"
    return f"{item.classification.days_remaining} 天後到期"


def build_digest(profile: ProfileModel, items: list[DueItem], app_url: str = "") -> Digest:
    """Compose the reminder email. items must already be in digest order (expired first)."""
    expired_count = sum(1 for it in items if it.is_expired)
    rows = [
        {
            "name": it.subscription.name,
            "category": it.subscription.category,
            "price": format_price(it.subscription.currency, it.subscription.price),
            "expiry_date": it.subscription.expiry_date.isoformat(),
            "expired": it.is_expired,
            "status_label": _status_label(it),
        }
        for it in items
    ]
    html = _env.get_template("email/reminder_digest.html").render(
        greeting_name=profile.nickname or "用戶",
        expired_count=expired_count,
        expiring_count=len(items) - expired_count,
        rows=rows,
        app_url=app_url.rstrip("/"),
    )
    return Digest(
        recipient=profile.email,
        subject=f"📋 SubTrack: 您有 {len(items)} 個訂閱需要關注",
        html=html,
        expired_count=expired_count,
        expiring_count=len(items) - expired_count,
        subscription_ids=[it.subscription.id for it in items],
    )


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

def check_reminder_config(settings: Settings) -> None:
    missing = [name for name in ("RESEND_API_KEY", "EMAIL_FROM") if not getattr(settings, name)]
    if missing:
        raise ReminderConfigError(f"Email configuration missing: {', '.join(missing)}")


def _opted_in_profiles(db: Session) -> list[ProfileModel]:
    return (
        db.query(ProfileModel)
        .filter(ProfileModel.email_notify == True)  # noqa: E712
        .order_by(ProfileModel.id)
        .all()
    )


def collect_due_items(db: Session, profile: ProfileModel, today: date) -> list[DueItem]:
    """Load a user's subscriptions, refresh their stored status and pick the due ones."""
    subs = db.query(SubscriptionModel).filter(SubscriptionModel.user_id == profile.id).all()
    refresh_derived_fields(db, subs, today)
    return select_due_subscriptions(subs, profile.reminder_days, today)


def run_reminder_batch(
    db: Session,
    today: date | None = None,
    send: Callable[[str, str, str], EmailResult] = send_email,
    settings: Settings | None = None,
) -> ReminderRunSummary:
    """Run one reminder pass over all opted-in users. Never raises for a single user's failure."""
    settings = settings or get_settings()
    try:
        check_reminder_config(settings)
    except ReminderConfigError as e:
        logger.error("Reminder run aborted: %s", e)
        return ReminderRunSummary(success=False, error=str(e))

    if today is None:
        today = local_today()

    try:
        profiles = _opted_in_profiles(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Reminder run aborted: could not load profiles")
        return ReminderRunSummary(success=False, error=str(e))

    if not profiles:
        logger.info("Reminder run: no opted-in users")
        return ReminderRunSummary(success=True)

    results: list[UserSendOutcome] = []
    for profile in profiles:
        if not profile.email:
            continue
        try:
            items = collect_due_items(db, profile, today)
        except Exception as e:
            db.rollback()
            logger.exception("Reminder fetch failed for user %d", profile.id)
            results.append(UserSendOutcome(profile.id, profile.email, 0, False, str(e)))
            continue

        if not items:
            continue

        try:
            digest = build_digest(profile, items, settings.APP_BASE_URL)
            outcome = send(digest.recipient, digest.subject, digest.html)
        except Exception as e:
            logger.exception("Reminder send failed for user %d", profile.id)
            results.append(UserSendOutcome(profile.id, profile.email, len(items), False, str(e)))
            continue

        results.append(UserSendOutcome(
            user_id=profile.id,
            email=profile.email,
            services_count=len(items),
            email_sent=outcome.success,
            error=outcome.error,
        ))

    sent = sum(1 for r in results if r.email_sent)
    logger.info("Reminder run: %d digest(s) sent, %d user(s) processed", sent, len(results))
    return ReminderRunSummary(success=True, processed_users=len(results), results=results)
