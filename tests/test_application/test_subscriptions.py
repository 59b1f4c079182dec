"""Tests for subscription use cases: CRUD, derived-field write-back and queries."""
import pytest
from datetime import date, timedelta
from sqlalchemy.exc import IntegrityError

from subtrack.application.subscriptions import (
    CreateSubscriptionUseCase, UpdateSubscriptionUseCase, DeleteSubscriptionUseCase,
    SubscriptionValidationError,
    list_subscriptions, list_urgent_subscriptions, refresh_derived_fields, subscription_to_dict,
)
from subtrack.domain.subscription_status import STATUS_EXPIRED, STATUS_EXPIRING, classify
from subtrack.infrastructure.db.models import SubscriptionModel

TODAY = date(2024, 5, 21)


def _create(db, user_id, name="Netflix Premium", expiry=date(2024, 6, 15), **kw):
    return CreateSubscriptionUseCase(db).execute(
        user_id=user_id, name=name, expiry_date=expiry, today=TODAY, **kw,
    )


class TestCreate:
    def test_derived_fields_written(self, db_session, user):
        sub = _create(db_session, user.id, expiry="2024-05-23")
        expected = classify(sub.expiry_date, TODAY)
        assert sub.status == expected.status == STATUS_EXPIRING
        assert sub.days_remaining == expected.days_remaining == 2

    def test_defaults(self, db_session, user):
        sub = _create(db_session, user.id)
        assert sub.start_date == TODAY
        assert sub.currency == "$"
        assert sub.price == "0"
        assert sub.billing_cycle == "monthly"
        assert sub.icon == "cloud"
        assert sub.category == "雲端服務"
        assert len(sub.id) == 36

    def test_price_normalised(self, db_session, user):
        sub = _create(db_session, user.id, price="HK$1,200.50", currency="HK$")
        assert sub.price == "1200.50"
        assert subscription_to_dict(sub)["price"] == "HK$1200.50"

    def test_empty_optional_text_stored_as_none(self, db_session, user):
        sub = _create(db_session, user.id, notes="  ", renewal_link="")
        assert sub.notes is None
        assert sub.renewal_link is None

    def test_name_required(self, db_session, user):
        with pytest.raises(SubscriptionValidationError):
            _create(db_session, user.id, name="   ")

    def test_expiry_required(self, db_session, user):
        with pytest.raises(SubscriptionValidationError):
            _create(db_session, user.id, expiry="")

    def test_unknown_billing_cycle_rejected(self, db_session, user):
        with pytest.raises(SubscriptionValidationError):
            _create(db_session, user.id, billing_cycle="weekly")
        assert db_session.query(SubscriptionModel).count() == 0

    def test_schema_rejects_unknown_billing_cycle(self, db_session, user):
        db_session.add(SubscriptionModel(
            user_id=user.id, name="Zoom", category="雲端服務", billing_cycle="weekly",
            start_date=TODAY, expiry_date=TODAY, status="expiring", days_remaining=0,
        ))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_unparseable_expiry_rejected(self, db_session, user):
        with pytest.raises(SubscriptionValidationError):
            _create(db_session, user.id, expiry="31/12/2024")
        assert db_session.query(SubscriptionModel).count() == 0


class TestUpdate:
    def test_expiry_change_recomputes_status(self, db_session, user):
        sub = _create(db_session, user.id, expiry=date(2024, 12, 31))
        updated = UpdateSubscriptionUseCase(db_session).execute(
            sub.id, user.id, today=TODAY, expiry_date="2024-05-20",
        )
        assert updated.status == STATUS_EXPIRED
        assert updated.days_remaining == -1

    def test_other_fields_leave_expiry_alone(self, db_session, user):
        sub = _create(db_session, user.id)
        UpdateSubscriptionUseCase(db_session).execute(sub.id, user.id, today=TODAY, name="Netflix", notes="family")
        assert sub.name == "Netflix"
        assert sub.notes == "family"
        assert sub.expiry_date == date(2024, 6, 15)

    def test_other_users_subscription_not_found(self, db_session, user):
        sub = _create(db_session, user.id)
        with pytest.raises(SubscriptionValidationError):
            UpdateSubscriptionUseCase(db_session).execute(sub.id, user.id + 1, today=TODAY, name="x")

    def test_empty_name_rejected(self, db_session, user):
        sub = _create(db_session, user.id)
        with pytest.raises(SubscriptionValidationError):
            UpdateSubscriptionUseCase(db_session).execute(sub.id, user.id, today=TODAY, name="")

    def test_billing_cycle_change_validated(self, db_session, user):
        sub = _create(db_session, user.id)
        UpdateSubscriptionUseCase(db_session).execute(sub.id, user.id, today=TODAY, billing_cycle="yearly")
        assert sub.billing_cycle == "yearly"
        with pytest.raises(SubscriptionValidationError):
            UpdateSubscriptionUseCase(db_session).execute(sub.id, user.id, today=TODAY, billing_cycle="weekly")


class TestDelete:
    def test_delete(self, db_session, user):
        sub = _create(db_session, user.id)
        DeleteSubscriptionUseCase(db_session).execute(sub.id, user.id)
        assert db_session.query(SubscriptionModel).count() == 0

    def test_delete_foreign_rejected(self, db_session, user):
        sub = _create(db_session, user.id)
        with pytest.raises(SubscriptionValidationError):
            DeleteSubscriptionUseCase(db_session).execute(sub.id, 999)
        assert db_session.query(SubscriptionModel).count() == 1


class TestQueries:
    def test_list_ordered_by_expiry(self, db_session, user):
        _create(db_session, user.id, name="B", expiry=date(2024, 9, 1))
        _create(db_session, user.id, name="A", expiry=date(2024, 6, 1))
        assert [s.name for s in list_subscriptions(db_session, user.id)] == ["A", "B"]

    def test_search_matches_name_and_category(self, db_session, user):
        _create(db_session, user.id, name="Spotify Duo", category="娛樂")
        _create(db_session, user.id, name="AWS Hosting", category="雲端服務")
        assert [s.name for s in list_subscriptions(db_session, user.id, search="spot")] == ["Spotify Duo"]
        assert [s.name for s in list_subscriptions(db_session, user.id, search="雲端")] == ["AWS Hosting"]

    def test_category_filter_all(self, db_session, user):
        _create(db_session, user.id, name="Spotify Duo", category="娛樂")
        _create(db_session, user.id, name="AWS Hosting", category="雲端服務")
        assert len(list_subscriptions(db_session, user.id, category="全部")) == 2
        assert len(list_subscriptions(db_session, user.id, category="娛樂")) == 1

    def test_urgent_uses_todays_status(self, db_session, user):
        # created long ago: stored as active, now expired
        sub = CreateSubscriptionUseCase(db_session).execute(
            user_id=user.id, name="AWS", expiry_date=date(2024, 5, 20), today=date(2024, 1, 1),
        )
        _create(db_session, user.id, name="Adobe", expiry=date(2024, 5, 23))
        _create(db_session, user.id, name="Jira", expiry=date(2024, 11, 20))

        urgent = list_urgent_subscriptions(db_session, user.id, TODAY)
        assert [s.name for s in urgent] == ["AWS", "Adobe"]
        assert sub.status == STATUS_EXPIRED
        assert sub.days_remaining == -1

    def test_refresh_counts_only_changed_rows(self, db_session, user):
        sub = _create(db_session, user.id)
        assert refresh_derived_fields(db_session, [sub], TODAY) == 0
        assert refresh_derived_fields(db_session, [sub], TODAY + timedelta(days=1)) == 1

    def test_to_dict_recomputes_when_today_given(self, db_session, user):
        sub = _create(db_session, user.id, expiry=date(2024, 5, 23))
        later = subscription_to_dict(sub, TODAY + timedelta(days=5))
        assert later["status"] == STATUS_EXPIRED
        assert later["days_remaining"] == -3
