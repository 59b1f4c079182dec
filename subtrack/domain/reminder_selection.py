"""
Reminder selection: which subscriptions belong in a user's reminder digest.

A subscription is due when, recomputed for today:
  - it is expired (always, whatever the lead time), or
  - days_remaining <= the user's reminder_days.

Expired items come first in the digest, the rest follow by days_remaining.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from subtrack.domain.subscription_status import STATUS_EXPIRED, StatusClassification, classify


@dataclass(frozen=True)
class DueItem:
    subscription: Any
    classification: StatusClassification

    @property
    def is_expired(self) -> bool:
        return self.classification.status == STATUS_EXPIRED


def is_due_for_reminder(classification: StatusClassification, reminder_days: int) -> bool:
    if classification.status == STATUS_EXPIRED:
        return True
    return classification.days_remaining <= reminder_days


def select_due_subscriptions(
    subscriptions: Iterable[Any],
    reminder_days: int,
    today: date,
) -> list[DueItem]:
    """
    Pick the subscriptions that warrant a reminder.

    Items only need an ``expiry_date`` attribute; stored status columns are
    ignored and recomputed here.
    """
    due = []
    for sub in subscriptions:
        cls = classify(sub.expiry_date, today)
        if is_due_for_reminder(cls, reminder_days):
            due.append(DueItem(subscription=sub, classification=cls))

    expired = [d for d in due if d.is_expired]
    upcoming = sorted(
        (d for d in due if not d.is_expired),
        key=lambda d: d.classification.days_remaining,
    )
    return expired + upcoming
