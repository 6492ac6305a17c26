"""
AdditionalInfoService -- versioned key/value side records.

Responsibility:
    Reads and writes AdditionalInfo rows keyed by
    (entity_type, entity_id, field_name).  Settlement instructions for a
    trade version are the key ("TRADE", <trade version id>,
    "SETTLEMENT_INSTRUCTIONS").

Architecture position:
    Kernel > Services.  Used by TradeService; knows nothing about trades
    beyond the entity-type constant.

Invariants enforced:
    - At most one active row per key.  ``upsert`` locks the current active
      row, deactivates it, flushes, then inserts version + 1, so the partial
      unique index never sees two active rows.
    - Rows are never deleted; ``remove`` deactivates.

Failure modes:
    - AdditionalInfoNotFoundError from ``remove`` when the key has no
      active row.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from trade_kernel.domain.clock import Clock
from trade_kernel.exceptions import AdditionalInfoNotFoundError
from trade_kernel.logging_config import get_logger
from trade_kernel.models.additional_info import (
    ENTITY_TYPE_TRADE,
    FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
    FIELD_TYPE_STRING,
    AdditionalInfo,
)
from trade_kernel.services.base import BaseService

logger = get_logger("services.additional_info")


@dataclass(frozen=True)
class AdditionalInfoKey:
    entity_type: str
    entity_id: UUID
    field_name: str

    @classmethod
    def settlement_instructions(cls, trade_version_id: UUID) -> "AdditionalInfoKey":
        return cls(ENTITY_TYPE_TRADE, trade_version_id, FIELD_NAME_SETTLEMENT_INSTRUCTIONS)


@dataclass(frozen=True)
class AdditionalInfoRecord:
    """Snapshot of one AdditionalInfo row."""

    id: UUID
    entity_type: str
    entity_id: UUID
    field_name: str
    field_value: str | None
    field_type: str
    version: int
    active: bool
    created_date: datetime
    last_modified_date: datetime
    deactivated_date: datetime | None


class AdditionalInfoService(BaseService):
    """Versioned upsert and lookup of additional-info fields."""

    def __init__(self, session: Session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def _to_dto(self, row: AdditionalInfo) -> AdditionalInfoRecord:
        return AdditionalInfoRecord(
            id=row.id,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            field_name=row.field_name,
            field_value=row.field_value,
            field_type=row.field_type,
            version=row.version,
            active=row.active,
            created_date=row.created_date,
            last_modified_date=row.last_modified_date,
            deactivated_date=row.deactivated_date,
        )

    def _active_row(self, key: AdditionalInfoKey, lock: bool = False) -> AdditionalInfo | None:
        stmt = select(AdditionalInfo).where(
            AdditionalInfo.entity_type == key.entity_type,
            AdditionalInfo.entity_id == key.entity_id,
            AdditionalInfo.field_name == key.field_name,
            AdditionalInfo.active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _deactivate(self, row: AdditionalInfo) -> None:
        now = self._clock.now()
        row.active = False
        row.deactivated_date = now
        row.last_modified_date = now

    def upsert(
        self,
        key: AdditionalInfoKey,
        value: str | None,
        field_type: str = FIELD_TYPE_STRING,
        actor_id: str | None = None,
    ) -> AdditionalInfoRecord:
        """
        Write a new version of ``key``.

        Postconditions:
            - The returned row is the only active row for ``key``.
            - Its version is the previous active version + 1, or 1.
        """
        previous = self._active_row(key, lock=True)
        version = 1
        if previous is not None:
            version = previous.version + 1
            self._deactivate(previous)
            self.session.flush()

        now = self._clock.now()
        row = AdditionalInfo(
            entity_type=key.entity_type,
            entity_id=key.entity_id,
            field_name=key.field_name,
            field_value=value,
            field_type=field_type,
            version=version,
            active=True,
            created_date=now,
            last_modified_date=now,
            created_by=actor_id or "system",
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "additional_info_upserted",
            extra={
                "entity_type": key.entity_type,
                "entity_id": str(key.entity_id),
                "field_name": key.field_name,
                "version": version,
            },
        )
        return self._to_dto(row)

    def get(self, key: AdditionalInfoKey) -> str | None:
        """Value of the active row for ``key``, or None."""
        row = self._active_row(key)
        return row.field_value if row is not None else None

    def get_by_entity_primary_key(
        self,
        entity_id: UUID,
        entity_type: str = ENTITY_TYPE_TRADE,
        field_name: str = FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
    ) -> str | None:
        """
        Value of the most recently created row for the entity, active or not.

        A superseded trade version's instructions may already be inactive;
        this is how an amendment reads the text it is carrying forward.
        """
        row = self.session.execute(
            select(AdditionalInfo)
            .where(
                AdditionalInfo.entity_type == entity_type,
                AdditionalInfo.entity_id == entity_id,
                AdditionalInfo.field_name == field_name,
            )
            .order_by(
                AdditionalInfo.created_date.desc(),
                AdditionalInfo.version.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()
        return row.field_value if row is not None else None

    def remove(self, key: AdditionalInfoKey) -> AdditionalInfoRecord:
        """Deactivate the active row for ``key``."""
        row = self._active_row(key, lock=True)
        if row is None:
            raise AdditionalInfoNotFoundError(
                key.entity_type, str(key.entity_id), key.field_name
            )
        self._deactivate(row)
        self.session.flush()

        logger.info(
            "additional_info_removed",
            extra={
                "entity_type": key.entity_type,
                "entity_id": str(key.entity_id),
                "field_name": key.field_name,
                "version": row.version,
            },
        )
        return self._to_dto(row)

    def get_for_entity(self, entity_type: str, entity_id: UUID) -> list[AdditionalInfoRecord]:
        """All active fields for one entity, by field name."""
        rows = self.session.execute(
            select(AdditionalInfo)
            .where(
                AdditionalInfo.entity_type == entity_type,
                AdditionalInfo.entity_id == entity_id,
                AdditionalInfo.active.is_(True),
            )
            .order_by(AdditionalInfo.field_name)
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    # ------------------------------------------------------------------
    # Settlement instructions
    # ------------------------------------------------------------------

    def save_settlement_instructions(
        self,
        trade_version_id: UUID,
        instructions: str | None,
        actor_id: str | None = None,
    ) -> AdditionalInfoRecord | None:
        """Upsert SI text for a trade version; blank text writes nothing."""
        if instructions is None or not instructions.strip():
            return None
        return self.upsert(
            AdditionalInfoKey.settlement_instructions(trade_version_id),
            instructions,
            actor_id=actor_id,
        )

    def get_settlement_instructions(self, trade_version_id: UUID) -> str | None:
        return self.get(AdditionalInfoKey.settlement_instructions(trade_version_id))
