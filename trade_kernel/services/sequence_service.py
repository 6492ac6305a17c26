"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Allocates business trade ids.  A dedicated counter table with
    row-level locking (``SELECT ... FOR UPDATE``) hands out strictly
    increasing values under concurrent creation.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by TradeService.create_trade when the caller supplies no id.

Invariants enforced:
    - Counting existing trade rows and adding a base is FORBIDDEN: two
      concurrent creators would read the same count.  The locked counter
      row is the sole source of truth for the next value.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from trade_kernel.db.base import Base
from trade_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with the last value handed out.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic values per sequence name via a locked row.
        - Gap-safe under normal operation; a rolled-back transaction
          returns its value.

    Usage:
        trade_id = SequenceService(session).next_trade_id(base=10000)
    """

    TRADE_ID = "trade_id"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value (starting at 1) for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this name.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; another transaction may be creating the same row.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_trade_id(self, base: int) -> int:
        """Next business trade id: ``base`` for the first trade, then base + 1, ..."""
        return base + self.next_value(self.TRADE_ID) - 1

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, without incrementing; None if never used."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()
