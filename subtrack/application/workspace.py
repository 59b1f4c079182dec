"""
Subscription workspace: the interactive session over AppState.

Owns the current AppState and the add/edit form, and pushes every
create/update/delete through run_optimistic(): the list changes at once,
the gateway call follows, a failure restores the previous list and leaves
the message in last_error. Nothing raised by the gateway escapes.
"""
import logging
from datetime import date
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subtrack.application import app_state as reducers
from subtrack.application import subscription_form as form
from subtrack.application.app_state import AppState, SubscriptionItem
from subtrack.application.optimistic import OptimisticResult, RemoteCallError, run_optimistic
from subtrack.application.subscriptions import (
    CreateSubscriptionUseCase, UpdateSubscriptionUseCase, DeleteSubscriptionUseCase,
    SubscriptionValidationError, list_subscriptions, subscription_to_dict,
)
from subtrack.utils.clock import local_today

logger = logging.getLogger(__name__)


class NotAuthenticatedError(RemoteCallError):
    def __init__(self, message: str = "用戶未登錄"):
        super().__init__(message)


class SubscriptionGateway(Protocol):
    def list(self) -> list[SubscriptionItem]: ...

    def add(self, item: SubscriptionItem) -> SubscriptionItem: ...

    def update(self, item: SubscriptionItem) -> SubscriptionItem: ...

    def delete(self, subscription_id: str) -> None: ...


def _item_fields(item: SubscriptionItem) -> dict:
    return {
        "name": item.name,
        "expiry_date": item.expiry_date,
        "category": item.category,
        "price": item.price,
        "currency": item.currency,
        "billing_cycle": item.billing_cycle,
        "start_date": item.start_date,
        "icon": item.icon,
        "notes": item.notes,
        "renewal_link": item.renewal_link,
    }


class DbSubscriptionGateway:
    """Gateway backed directly by the use cases; store failures become RemoteCallError."""

    def __init__(self, db: Session, user_id: int | None, today: Callable[[], date] = local_today):
        self.db = db
        self.user_id = user_id
        self.today = today

    def _require_user(self) -> int:
        if self.user_id is None:
            raise NotAuthenticatedError()
        return self.user_id

    def _call(self, fn, fallback_message: str):
        try:
            return fn()
        except SubscriptionValidationError as e:
            self.db.rollback()
            raise RemoteCallError(str(e))
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Store call failed")
            raise RemoteCallError(fallback_message)

    def _to_item(self, sub) -> SubscriptionItem:
        return SubscriptionItem.from_dict(subscription_to_dict(sub, self.today()))

    def list(self) -> list[SubscriptionItem]:
        user_id = self._require_user()
        subs = self._call(lambda: list_subscriptions(self.db, user_id), "獲取服務列表失敗")
        return [self._to_item(s) for s in subs]

    def add(self, item: SubscriptionItem) -> SubscriptionItem:
        user_id = self._require_user()
        sub = self._call(
            lambda: CreateSubscriptionUseCase(self.db).execute(
                user_id=user_id, today=self.today(), **_item_fields(item),
            ),
            "新增服務失敗",
        )
        return self._to_item(sub)

    def update(self, item: SubscriptionItem) -> SubscriptionItem:
        user_id = self._require_user()
        sub = self._call(
            lambda: UpdateSubscriptionUseCase(self.db).execute(
                item.id, user_id, today=self.today(), **_item_fields(item),
            ),
            "更新服務失敗",
        )
        return self._to_item(sub)

    def delete(self, subscription_id: str) -> None:
        user_id = self._require_user()
        self._call(
            lambda: DeleteSubscriptionUseCase(self.db).execute(subscription_id, user_id),
            "刪除服務失敗",
        )


class SubscriptionWorkspace:
    def __init__(
        self,
        gateway: SubscriptionGateway,
        state: AppState | None = None,
        today: Callable[[], date] = local_today,
    ):
        self.gateway = gateway
        self.state = state or AppState()
        self.form = form.FormState()
        self.today = today
        self.last_error: str | None = None

    def _remember(self, result: OptimisticResult) -> OptimisticResult:
        self.last_error = result.error
        return result

    # --- loading -----------------------------------------------------------

    def load(self) -> bool:
        try:
            items = self.gateway.list()
        except RemoteCallError as e:
            self.last_error = e.message
            return False
        self.state = reducers.refresh_statuses(
            reducers.load_data(self.state, subscriptions=items), self.today(),
        )
        self.last_error = None
        return True

    # --- optimistic CRUD ---------------------------------------------------

    def add(self, item: SubscriptionItem) -> OptimisticResult:
        return self._remember(run_optimistic(
            self,
            apply=lambda s: reducers.add_subscription(s, item),
            commit=lambda: self.gateway.add(item),
            reconcile=lambda s, saved: reducers.replace_subscription(s, item.id, saved),
        ))

    def update(self, item: SubscriptionItem) -> OptimisticResult:
        return self._remember(run_optimistic(
            self,
            apply=lambda s: reducers.update_subscription(s, item),
            commit=lambda: self.gateway.update(item),
            reconcile=lambda s, saved: reducers.update_subscription(s, saved),
        ))

    def delete(self, subscription_id: str) -> OptimisticResult:
        return self._remember(run_optimistic(
            self,
            apply=lambda s: reducers.remove_subscription(s, subscription_id),
            commit=lambda: self.gateway.delete(subscription_id),
        ))

    # --- form --------------------------------------------------------------

    def open_add(self) -> None:
        self.form = form.open_add(self.form, self.today())

    def open_edit(self, subscription_id: str) -> None:
        item = next((s for s in self.state.subscriptions if s.id == subscription_id), None)
        if item is None:
            self.last_error = "找不到此服務"
            return
        self.form = form.open_edit(self.form, item)

    def cancel_form(self) -> None:
        self.form = form.cancel(self.form)

    def submit_form(self, values: dict) -> OptimisticResult:
        """Validation errors keep the form open and never reach the gateway."""
        editing = self.form.mode == form.FORM_EDITING
        try:
            self.form, item = form.submit(self.form, values, self.today())
        except form.FormValidationError as e:
            self.last_error = str(e)
            return OptimisticResult(ok=False, error=str(e))
        if editing:
            return self.update(item)
        return self.add(item)
