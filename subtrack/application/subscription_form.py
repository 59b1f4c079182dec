"""
Add/edit subscription form: a three-state machine.

  closed --open_add--> creating
  closed --open_edit(id)--> editing(id)
  creating | editing --cancel--> closed
  creating | editing --submit--> closed (+ draft SubscriptionItem)

Submit only checks that name and expiry_date are present, then classifies
expiry_date so the draft carries status/days_remaining before it is saved.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date

from subtrack.application.app_state import SubscriptionItem
from subtrack.application.subscriptions import DEFAULT_CATEGORY, DEFAULT_CURRENCY, DEFAULT_ICON
from subtrack.domain.subscription_status import InvalidDateError, classify, parse_calendar_date
from subtrack.utils.validation import normalize_price, format_price, clean_optional_text

FORM_CLOSED = "closed"
FORM_CREATING = "creating"
FORM_EDITING = "editing"

CURRENCIES = ("$", "HK$", "¥", "€", "£", "US$")


class FormValidationError(ValueError):
    pass


@dataclass(frozen=True)
class FormState:
    mode: str = FORM_CLOSED
    editing_id: str | None = None
    values: dict = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.mode != FORM_CLOSED


def default_form_values(today: date) -> dict:
    return {
        "name": "",
        "category": DEFAULT_CATEGORY,
        "price": "0.00",
        "currency": DEFAULT_CURRENCY,
        "billing_cycle": "monthly",
        "start_date": today.isoformat(),
        "expiry_date": "",
        "icon": DEFAULT_ICON,
        "notes": "",
        "renewal_link": "",
    }


def _split_display_price(price: str, currency: str | None) -> tuple[str, str]:
    """"HK$12.50" -> ("HK$", "12.50"). The longest matching currency prefix wins."""
    if currency:
        return currency, normalize_price(price)
    for cur in sorted(CURRENCIES, key=len, reverse=True):
        if price.startswith(cur):
            return cur, normalize_price(price)
    return DEFAULT_CURRENCY, normalize_price(price)


def open_add(state: FormState, today: date) -> FormState:
    return FormState(mode=FORM_CREATING, values=default_form_values(today))


def open_edit(state: FormState, item: SubscriptionItem) -> FormState:
    currency, price = _split_display_price(item.price, item.currency)
    return FormState(
        mode=FORM_EDITING,
        editing_id=item.id,
        values={
            "name": item.name,
            "category": item.category,
            "price": price,
            "currency": currency,
            "billing_cycle": item.billing_cycle,
            "start_date": item.start_date.isoformat(),
            "expiry_date": item.expiry_date.isoformat(),
            "icon": item.icon,
            "notes": item.notes or "",
            "renewal_link": item.renewal_link or "",
        },
    )


def cancel(state: FormState) -> FormState:
    return FormState()


def submit(state: FormState, values: dict, today: date, new_id: str | None = None) -> tuple[FormState, SubscriptionItem]:
    """
    Validate and close the form.

    Returns (closed state, draft item). Raises FormValidationError and leaves
    the caller's state untouched when the form is closed or a required field
    is missing.
    """
    if not state.is_open:
        raise FormValidationError("表單未開啟")

    merged = {**state.values, **values}
    name = (merged.get("name") or "").strip()
    if not name:
        raise FormValidationError("服務名稱不能為空")
    try:
        expiry = parse_calendar_date(merged.get("expiry_date"))
    except InvalidDateError as e:
        raise FormValidationError(str(e))
    try:
        start = parse_calendar_date(merged.get("start_date") or today)
    except InvalidDateError as e:
        raise FormValidationError(str(e))

    cls = classify(expiry, today)
    if state.mode == FORM_EDITING:
        item_id = state.editing_id
    else:
        item_id = new_id or str(uuid.uuid4())
    currency = merged.get("currency") or DEFAULT_CURRENCY

    item = SubscriptionItem(
        id=item_id,
        name=name,
        category=merged.get("category") or DEFAULT_CATEGORY,
        price=format_price(currency, merged.get("price")),
        currency=currency,
        billing_cycle=merged.get("billing_cycle") or "monthly",
        start_date=start,
        expiry_date=expiry,
        status=cls.status,
        days_remaining=cls.days_remaining,
        icon=merged.get("icon") or DEFAULT_ICON,
        notes=clean_optional_text(merged.get("notes")),
        renewal_link=clean_optional_text(merged.get("renewal_link")),
    )
    return FormState(), item
