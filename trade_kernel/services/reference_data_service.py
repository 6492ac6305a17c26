"""
ReferenceDataService -- unified name-or-id lookup for static data.

Responsibility:
    One lookup surface for every reference kind a trade points at (books,
    counterparties, currencies, statuses, trade types and sub-types, leg
    types, indices, holiday calendars, schedules, business-day conventions,
    pay/receive flags, users).  ``resolve()`` turns an EntityRef into a row
    exactly once; nothing else in the kernel branches on "name or id".

Architecture position:
    Kernel > Services -- imperative shell.  Read-mostly; writes only from
    ``seed_defaults()`` and ``create_user()``.

Invariants enforced:
    - Id beats name when an EntityRef carries both.
    - Name lookups try an exact match first, then a case-insensitive one.
    - Users are looked up by ``login_id``.

Failure modes:
    - ReferenceDataNotFoundError from ``require()`` when a ref does not
      resolve.
"""

from collections.abc import Iterable, Mapping
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from trade_kernel.domain.dtos import EntityRef
from trade_kernel.exceptions import ReferenceDataNotFoundError
from trade_kernel.logging_config import get_logger
from trade_kernel.models.reference import (
    ApplicationUser,
    Book,
    BusinessDayConvention,
    Counterparty,
    Currency,
    HolidayCalendar,
    LegType,
    PayRec,
    RateIndex,
    Schedule,
    TradeStatus,
    TradeSubType,
    TradeType,
    UserProfile,
)
from trade_kernel.services.base import BaseService

logger = get_logger("services.reference_data")

# Seed keys (as used in configuration) -> model
REFERENCE_MODELS: Mapping[str, type] = {
    "books": Book,
    "counterparties": Counterparty,
    "currencies": Currency,
    "trade_statuses": TradeStatus,
    "trade_types": TradeType,
    "trade_sub_types": TradeSubType,
    "leg_types": LegType,
    "indices": RateIndex,
    "holiday_calendars": HolidayCalendar,
    "schedules": Schedule,
    "business_day_conventions": BusinessDayConvention,
    "pay_recs": PayRec,
    "user_profiles": UserProfile,
}


def _name_column(model: type):
    if model is ApplicationUser:
        return ApplicationUser.login_id
    return model.name


class ReferenceDataService(BaseService):
    """Lookups and seeding for reference data."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_by_name(self, model: type, name: str | None):
        """Row whose name (login id for users) matches, or None."""
        if name is None or not name.strip():
            return None
        column = _name_column(model)
        row = self.session.execute(
            select(model).where(column == name)
        ).scalar_one_or_none()
        if row is not None:
            return row
        return self.session.execute(
            select(model).where(func.lower(column) == name.strip().lower())
        ).scalars().first()

    def find_by_id(self, model: type, entity_id: UUID | None):
        if entity_id is None:
            return None
        return self.session.get(model, entity_id)

    def exists_by_id_and_active(
        self,
        model: type,
        entity_id: UUID | None,
        active: bool = True,
    ) -> bool:
        if entity_id is None:
            return False
        found = self.session.execute(
            select(model.id).where(model.id == entity_id, model.active == active)
        ).first()
        return found is not None

    def resolve(self, model: type, ref: EntityRef | UUID | str | None):
        """Row for ``ref`` (id first, then name), or None."""
        ref = EntityRef.of(ref)
        if ref.id is not None:
            return self.find_by_id(model, ref.id)
        return self.find_by_name(model, ref.name)

    def require(self, model: type, ref: EntityRef | UUID | str | None):
        """Like ``resolve()``, but raises when nothing is found."""
        row = self.resolve(model, ref)
        if row is None:
            raise ReferenceDataNotFoundError(
                getattr(model, "kind", model.__name__),
                str(EntityRef.of(ref)) or None,
            )
        return row

    def find_user(self, login_id: str | None) -> ApplicationUser | None:
        return self.find_by_name(ApplicationUser, login_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def seed_defaults(self, seeds: Mapping[str, Iterable[str]]) -> dict[str, int]:
        """
        Insert missing reference rows named in ``seeds``.

        Args:
            seeds: Mapping of seed key (see REFERENCE_MODELS) to names.

        Returns:
            Count of rows created per seed key.  Existing names are left
            untouched.

        Raises:
            KeyError: Unknown seed key.
        """
        created: dict[str, int] = {}
        for key, names in seeds.items():
            model = REFERENCE_MODELS[key]
            count = 0
            for name in names:
                existing = self.session.execute(
                    select(model).where(model.name == name)
                ).scalar_one_or_none()
                if existing is None:
                    self.session.add(model(name=name, active=True))
                    count += 1
            created[key] = count
        self.session.flush()

        logger.info(
            "reference_data_seeded",
            extra={"created_counts": created, "total_created": sum(created.values())},
        )
        return created

    def create_user(
        self,
        login_id: str,
        first_name: str,
        last_name: str,
        role: str | None,
        active: bool = True,
    ) -> ApplicationUser:
        """Create a user, attaching (or creating) the profile for ``role``."""
        profile = None
        if role is not None:
            profile = self.find_by_name(UserProfile, role)
            if profile is None:
                profile = UserProfile(name=role, active=True)
                self.session.add(profile)

        user = ApplicationUser(
            login_id=login_id,
            first_name=first_name,
            last_name=last_name,
            active=active,
            user_profile=profile,
        )
        self.session.add(user)
        self.session.flush()

        logger.info(
            "user_created",
            extra={"login_id": login_id, "role": role, "active": active},
        )
        return user
