"""
Module: trade_kernel.models.additional_info
Responsibility: Generic versioned key-value rows attached to an entity,
    keyed by (entity_type, entity_id, field_name).  Settlement instructions
    are stored here.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one active row per key (partial unique index
      uq_additional_info_single_active).  Writing a new value deactivates
      the previous row and inserts version + 1.
    - Rows are never deleted; removal is deactivation.

Audit relevance:
    The full history of a field is the set of rows for its key ordered by
    version.  Inactive rows stay readable so a superseded trade version
    can still be traced to the instructions it carried.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from trade_kernel.db.base import TrackedBase
from trade_kernel.db.types import ShortCode

ENTITY_TYPE_TRADE = "TRADE"
FIELD_NAME_SETTLEMENT_INSTRUCTIONS = "SETTLEMENT_INSTRUCTIONS"
FIELD_TYPE_STRING = "STRING"


class AdditionalInfo(TrackedBase):
    """One version of one field value for one entity."""

    __tablename__ = "additional_info"

    __table_args__ = (
        Index(
            "uq_additional_info_single_active",
            "entity_type",
            "entity_id",
            "field_name",
            unique=True,
            postgresql_where=text("active = true"),
            sqlite_where=text("active = 1"),
        ),
        Index("idx_additional_info_key", "entity_type", "entity_id", "field_name"),
    )

    entity_type: Mapped[ShortCode] = mapped_column(nullable=False)

    # Surrogate id of the owning row (for trades: the trade *version* id)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)

    field_name: Mapped[str] = mapped_column(String(100), nullable=False)

    field_value: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    field_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=FIELD_TYPE_STRING,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_date: Mapped[datetime] = mapped_column(nullable=False)
    last_modified_date: Mapped[datetime] = mapped_column(nullable=False)
    deactivated_date: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AdditionalInfo {self.entity_type}/{self.entity_id}/"
            f"{self.field_name} v{self.version} active={self.active}>"
        )
