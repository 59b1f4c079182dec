"""
SQLAlchemy ORM models
"""
import uuid
from datetime import date as date_type

from sqlalchemy import String, DateTime, Integer, Text, TIMESTAMP, Date, func, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from subtrack.infrastructure.db.session import Base


def _new_subscription_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Login identity. Everything user-facing lives in ProfileModel.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class ProfileModel(Base):
    """User profile: display fields + reminder preferences (1:1 with users)"""
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    email_notify: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    reminder_days: Mapped[int] = mapped_column(Integer, nullable=False, default=7, server_default="7")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SubscriptionModel(Base):
    """
    Tracked recurring service.

    status / days_remaining are a denormalised copy of classify(expiry_date, today),
    kept only so the database can filter and sort on them. They are rewritten on
    every save and refreshed before any decision is made from them.
    """
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_subscription_id)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[str] = mapped_column(String(32), nullable=False, default="0", server_default="0")
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="$", server_default="$")
    billing_cycle: Mapped[str] = mapped_column(String(16), nullable=False, default="monthly", server_default="monthly")  # monthly | yearly

    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False)  # active | expiring | expired
    days_remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    icon: Mapped[str] = mapped_column(String(50), nullable=False, default="cloud", server_default="cloud")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    renewal_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("billing_cycle IN ('monthly', 'yearly')", name="ck_services_billing_cycle"),
        CheckConstraint("status IN ('active', 'expiring', 'expired')", name="ck_services_status"),
        Index("ix_services_user_expiry", "user_id", "expiry_date"),
        Index("ix_services_user_status", "user_id", "status"),
    )
