"""
Module: trade_kernel.models.reference
Responsibility: ORM persistence for the static reference data a trade points
    at: books, counterparties, currencies, statuses, trade types and
    sub-types, leg types, rate indices, holiday calendars, schedules,
    business-day conventions, pay/receive flags, users and user profiles.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Every reference row carries a unique ``name`` and an ``active`` flag.
      Lookups by name and by id, and the exists-and-active check, are the
      same for every kind (see ReferenceDataService).
    - Trades reference these rows; they never own them.

Failure modes:
    - IntegrityError on duplicate name within a reference table.
"""

from typing import ClassVar
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trade_kernel.db.base import Base, TrackedBase


class ReferenceBase(TrackedBase):
    """
    Abstract base for named reference data.

    Contract:
        ``kind`` is the human label used in error messages and logs
        ("Book", "Trade Status", ...).
    """

    __abstract__ = True

    kind: ClassVar[str] = "Reference"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class Book(ReferenceBase):
    __tablename__ = "books"
    kind: ClassVar[str] = "Book"


class Counterparty(ReferenceBase):
    __tablename__ = "counterparties"
    kind: ClassVar[str] = "Counterparty"


class Currency(ReferenceBase):
    """ISO currency code held in ``name`` (e.g. "USD")."""

    __tablename__ = "currencies"
    kind: ClassVar[str] = "Currency"


class TradeStatus(ReferenceBase):
    """NEW, LIVE, AMENDED, TERMINATED, CANCELLED, DEAD."""

    __tablename__ = "trade_statuses"
    kind: ClassVar[str] = "Trade Status"


class TradeType(ReferenceBase):
    __tablename__ = "trade_types"
    kind: ClassVar[str] = "Trade Type"


class TradeSubType(ReferenceBase):
    __tablename__ = "trade_sub_types"
    kind: ClassVar[str] = "Trade Sub Type"


class LegType(ReferenceBase):
    """Fixed or Floating."""

    __tablename__ = "leg_types"
    kind: ClassVar[str] = "Leg Type"


class RateIndex(ReferenceBase):
    """Floating-rate index (e.g. "SOFR")."""

    __tablename__ = "rate_indices"
    kind: ClassVar[str] = "Index"


class HolidayCalendar(ReferenceBase):
    __tablename__ = "holiday_calendars"
    kind: ClassVar[str] = "Holiday Calendar"


class Schedule(ReferenceBase):
    """Calculation-period schedule ("Monthly", "3M", ...)."""

    __tablename__ = "schedules"
    kind: ClassVar[str] = "Schedule"


class BusinessDayConvention(ReferenceBase):
    __tablename__ = "business_day_conventions"
    kind: ClassVar[str] = "Business Day Convention"


class PayRec(ReferenceBase):
    """PAY or RECEIVE."""

    __tablename__ = "pay_recs"
    kind: ClassVar[str] = "Pay/Receive Flag"


class UserProfile(ReferenceBase):
    """User profile whose ``name`` is the role (TRADER_SALES, MO, ...)."""

    __tablename__ = "user_profiles"
    kind: ClassVar[str] = "User Profile"


class ApplicationUser(Base):
    """
    Desk user.  ``login_id`` is the caller identity passed into every
    lifecycle operation; the role comes from the attached profile.
    """

    __tablename__ = "application_users"

    kind: ClassVar[str] = "User"

    login_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)

    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    user_profile_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("user_profiles.id"),
        nullable=True,
    )

    user_profile: Mapped[UserProfile | None] = relationship()

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def role(self) -> str | None:
        """Upper-cased profile name, or None when no profile is attached."""
        if self.user_profile is None or not self.user_profile.name:
            return None
        return self.user_profile.name.upper()

    def __repr__(self) -> str:
        return f"<ApplicationUser {self.login_id!r}>"
