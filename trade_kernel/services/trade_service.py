"""
TradeService -- the trade lifecycle manager.

Responsibility:
    Create, amend, terminate, cancel and (soft) delete swap trades, update
    their settlement instructions, and serve the trade read side (by id,
    paged listing, filtered search, settlement-instruction search).

Architecture position:
    Kernel > Services -- imperative shell.  Composes PrivilegeService,
    TradeValidator, ReferenceDataService, SequenceService,
    CashflowGenerator, AdditionalInfoService and TradeSelector.  Never
    commits; the caller's session_scope() owns the transaction.

Lifecycle:
    NEW -> LIVE -> AMENDED -> {TERMINATED | CANCELLED}, DEAD terminal.
    Amendment appends version + 1.  Terminate and cancel change the status
    of the active version in place; they do not create a version.

Invariants enforced:
    - Authorize, validate and resolve every reference BEFORE the first
      write.  A rejected call leaves no trade, leg or cashflow rows.
    - At most one active version per trade_id.  The active row is read
      with a row lock, deactivated and flushed before version + 1 is
      inserted; the partial unique index uq_trade_single_active backs
      this up.
    - Trade ids come from the locked trade_id sequence, never from
      counting rows.  Ids already booked explicitly are skipped.

Failure modes:
    - InsufficientPrivilegeError: role does not permit the operation.
    - TradeValidationError: business-rule or leg checks failed.
    - TradeNotFoundError: no active version for the trade id.
    - TradeStatusNotFoundError: NEW/AMENDED/TERMINATED/CANCELLED row missing.
    - ReferenceDataNotFoundError: a leg names an unknown currency,
      schedule, convention or flag.
    - InvalidSettlementInstructionsError: instruction text fails the
      allow-list.
    - OptimisticLockError: ``expected_version`` is stale.

Audit relevance:
    Settlement instructions supplied on an amendment by a caller without
    the settlement editor role are skipped, not rejected.  The skip is
    logged as ``settlement_instructions_update_skipped``.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from trade_kernel.domain.clock import Clock
from trade_kernel.domain.dtos import (
    EntityRef,
    Page,
    TradeInfo,
    TradeInput,
    TradeLegInput,
    TradeSearchFilter,
)
from trade_kernel.domain.operations import TradeOperation
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.domain.settlement import (
    sanitize_search_text,
    validate_settlement_instructions,
    was_truncated,
)
from trade_kernel.exceptions import (
    InsufficientPrivilegeError,
    OptimisticLockError,
    TradeNotFoundError,
    TradeStatusNotFoundError,
    TradeValidationError,
)
from trade_kernel.logging_config import LogContext, get_logger
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
)
from trade_kernel.models.trade import Trade, TradeLeg
from trade_kernel.selectors.trade_selector import DEFAULT_PAGE_SIZE, TradeSelector
from trade_kernel.services.additional_info_service import AdditionalInfoService
from trade_kernel.services.base import BaseService
from trade_kernel.services.cashflow_generator import CashflowGenerator
from trade_kernel.services.privilege_service import PrivilegeService
from trade_kernel.services.reference_data_service import ReferenceDataService
from trade_kernel.services.sequence_service import SequenceService
from trade_kernel.services.trade_validator import TradeValidator

logger = get_logger("services.trade")

UPDATE_SETTLEMENT_INSTRUCTIONS = "UPDATE_SETTLEMENT_INSTRUCTIONS"


@dataclass(frozen=True)
class _TradeRefs:
    """Reference rows for one trade version, resolved before any write."""

    book: Book
    counterparty: Counterparty
    trade_status: TradeStatus
    trade_type: TradeType | None
    trade_sub_type: TradeSubType | None
    trader_user: ApplicationUser
    inputter_user: ApplicationUser | None


@dataclass(frozen=True)
class _LegRefs:
    leg_input: TradeLegInput
    pay_rec: PayRec
    leg_type: LegType
    currency: Currency
    index: RateIndex | None
    schedule: Schedule | None
    holiday_calendar: HolidayCalendar | None
    payment_bdc: BusinessDayConvention | None
    fixing_bdc: BusinessDayConvention | None


class TradeService(BaseService):
    """
    Lifecycle operations on swap trades.

    Every mutating operation takes the caller's login id explicitly; there
    is no ambient "current user".
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or LifecyclePolicy.standard()
        self._reference_data = ReferenceDataService(session)
        self._privileges = PrivilegeService(
            session, self._policy.permissions, self._reference_data
        )
        self._validator = TradeValidator(
            session, clock, self._policy, self._reference_data
        )
        self._cashflows = CashflowGenerator(session, clock, self._policy)
        self._additional_info = AdditionalInfoService(session, clock)
        self._sequence = SequenceService(session)
        self._trades = TradeSelector(session)

    # ------------------------------------------------------------------
    # Create / amend
    # ------------------------------------------------------------------

    def create_trade(self, trade_input: TradeInput, user_id: str) -> TradeInfo:
        """
        Book a new trade as version 1.

        Preconditions:
            - ``user_id`` holds CREATE.
            - ``trade_input`` passes business rules and carries exactly two
              consistent legs.

        Postconditions:
            - One active version 1 row, two legs, and cashflows for each
              leg when start and maturity dates are present.
            - Settlement instructions, when supplied, stored against the
              new version.
        """
        with LogContext.bind(
            actor_id=user_id,
            trade_id=trade_input.trade_id,
            operation=TradeOperation.CREATE.value,
        ):
            self._privileges.require(user_id, TradeOperation.CREATE)
            self._validate(trade_input)

            if trade_input.trade_id is not None and self._trades.get_versions(
                trade_input.trade_id
            ):
                raise TradeValidationError(
                    f"Trade {trade_input.trade_id} already exists; amend it instead."
                )

            status_ref = trade_input.trade_status
            if not status_ref.is_set:
                status_ref = EntityRef.by_name(self._policy.default_trade_status)
            refs = self._resolve_trade_refs(
                trade_input, user_id, self._require_status(status_ref)
            )
            legs = self._resolve_legs(trade_input.legs)

            instructions = None
            if trade_input.has_settlement_instructions:
                instructions = validate_settlement_instructions(
                    trade_input.settlement_instructions,
                    self._policy.settlement_instructions_pattern,
                )

            trade_id = trade_input.trade_id
            if trade_id is None:
                trade_id = self._next_free_trade_id()

            trade = self._insert_version(trade_id, 1, trade_input, refs, legs, user_id)
            if instructions is not None:
                self._additional_info.save_settlement_instructions(
                    trade.id, instructions, actor_id=user_id
                )

            info = TradeInfo.from_model(trade, instructions)
            logger.info(
                "trade_created",
                extra={
                    "trade_id": trade_id,
                    "version": 1,
                    "status": info.trade_status,
                    "leg_count": len(info.legs),
                    "cashflow_count": info.cashflow_count,
                },
            )
            return info

    def amend_trade(
        self,
        trade_id: int,
        trade_input: TradeInput,
        user_id: str,
        expected_version: int | None = None,
    ) -> TradeInfo:
        """
        Replace the active version of ``trade_id`` with version + 1.

        The new version is AMENDED whatever status the input names.
        Settlement instructions are written only when supplied by a
        settlement editor; otherwise the previous version's text is carried
        forward.

        Raises:
            OptimisticLockError: ``expected_version`` given and not the
                active version.
        """
        with LogContext.bind(
            actor_id=user_id,
            trade_id=trade_id,
            operation=TradeOperation.AMEND.value,
        ):
            self._privileges.require(user_id, TradeOperation.AMEND)
            self._validate(trade_input)

            refs = self._resolve_trade_refs(
                trade_input,
                user_id,
                self._require_status(EntityRef.by_name(self._policy.amended_status)),
            )
            legs = self._resolve_legs(trade_input.legs)

            new_instructions = None
            if trade_input.has_settlement_instructions:
                if self._is_settlement_editor(user_id):
                    new_instructions = validate_settlement_instructions(
                        trade_input.settlement_instructions,
                        self._policy.settlement_instructions_pattern,
                    )
                else:
                    logger.warning(
                        "settlement_instructions_update_skipped",
                        extra={
                            "trade_id": trade_id,
                            "user_id": user_id,
                            "reason": "caller_not_settlement_editor",
                        },
                    )

            current = self._lock_active(trade_id)
            if expected_version is not None and current.version != expected_version:
                raise OptimisticLockError(trade_id, expected_version, current.version)

            carried = self._additional_info.get_by_entity_primary_key(current.id)
            previous_version = current.version

            now = self._clock.now()
            current.active = False
            current.deactivated_date = now
            self.session.flush()

            trade = self._insert_version(
                trade_id, previous_version + 1, trade_input, refs, legs, user_id
            )

            instructions = new_instructions if new_instructions is not None else carried
            if instructions:
                self._additional_info.save_settlement_instructions(
                    trade.id, instructions, actor_id=user_id
                )

            info = TradeInfo.from_model(trade, instructions or None)
            logger.info(
                "trade_amended",
                extra={
                    "trade_id": trade_id,
                    "previous_version": previous_version,
                    "version": trade.version,
                    "settlement_instructions_updated": new_instructions is not None,
                    "cashflow_count": info.cashflow_count,
                },
            )
            return info

    def save_trade(self, trade_input: TradeInput, user_id: str) -> TradeInfo:
        """Amend when ``trade_input.trade_id`` has an active version, else create."""
        trade_id = trade_input.trade_id
        if trade_id is not None and self._trades.count_active_versions(trade_id) > 0:
            return self.amend_trade(trade_id, trade_input, user_id)
        return self.create_trade(trade_input, user_id)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def terminate_trade(self, trade_id: int, user_id: str) -> TradeInfo:
        return self._transition(
            trade_id, user_id, self._policy.terminated_status, "trade_terminated"
        )

    def cancel_trade(self, trade_id: int, user_id: str) -> TradeInfo:
        return self._transition(
            trade_id, user_id, self._policy.cancelled_status, "trade_cancelled"
        )

    def delete_trade(self, trade_id: int, user_id: str) -> TradeInfo:
        """Soft delete: cancels the trade.  No row is removed."""
        return self.cancel_trade(trade_id, user_id)

    def _transition(
        self,
        trade_id: int,
        user_id: str,
        status_name: str,
        event: str,
    ) -> TradeInfo:
        # Terminate and cancel share the TERMINATE privilege.
        with LogContext.bind(
            actor_id=user_id,
            trade_id=trade_id,
            operation=TradeOperation.TERMINATE.value,
        ):
            self._privileges.require(user_id, TradeOperation.TERMINATE)
            trade = self._lock_active(trade_id)
            status = self._require_status(EntityRef.by_name(status_name))

            previous_status = trade.status_name
            trade.trade_status = status
            trade.last_touch_timestamp = self._clock.now()
            self.session.flush()

            logger.info(
                event,
                extra={
                    "trade_id": trade_id,
                    "version": trade.version,
                    "from_status": previous_status,
                    "to_status": status.name,
                },
            )
            return self._trades.to_infos([trade])[0]

    # ------------------------------------------------------------------
    # Settlement instructions
    # ------------------------------------------------------------------

    def update_trade_settlement_instructions(
        self,
        trade_id: int,
        instructions: str,
        user_id: str,
    ) -> TradeInfo:
        """
        Write a new settlement-instruction version for the active trade.

        Raises:
            InsufficientPrivilegeError: caller is not a settlement editor.
            TradeNotFoundError: no active version.
            InvalidSettlementInstructionsError: text fails the allow-list.
        """
        with LogContext.bind(
            actor_id=user_id,
            trade_id=trade_id,
            operation=UPDATE_SETTLEMENT_INSTRUCTIONS,
        ):
            if not self._is_settlement_editor(user_id):
                logger.warning(
                    "privilege_rejected",
                    extra={"user_id": user_id, "operation": UPDATE_SETTLEMENT_INSTRUCTIONS},
                )
                raise InsufficientPrivilegeError(
                    user_id, UPDATE_SETTLEMENT_INSTRUCTIONS, "for this trade"
                )

            trade = self._lock_active(trade_id)
            validate_settlement_instructions(
                instructions, self._policy.settlement_instructions_pattern
            )

            record = self._additional_info.save_settlement_instructions(
                trade.id, instructions, actor_id=user_id
            )
            trade.last_touch_timestamp = self._clock.now()
            self.session.flush()

            logger.info(
                "settlement_instructions_updated",
                extra={
                    "trade_id": trade_id,
                    "version": trade.version,
                    "instructions_version": record.version if record else None,
                    "length": len(instructions),
                },
            )
            return TradeInfo.from_model(trade, instructions)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_trade_by_id(self, trade_id: int) -> TradeInfo:
        info = self._trades.get_active(trade_id)
        if info is None:
            raise TradeNotFoundError(trade_id)
        return info

    def find_all(self, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> Page[TradeInfo]:
        return self._trades.find_all(page, size)

    def search_trades(
        self,
        criteria: TradeSearchFilter,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TradeInfo]:
        return self._trades.search(criteria, page, size)

    def search_trades_by_settlement_instructions(self, text: str | None) -> list[TradeInfo]:
        """
        Active trades whose instructions contain ``text``.

        The term is truncated and stripped of everything outside the
        search allow-list; a term that ends up blank matches nothing.
        """
        max_length = self._policy.search_max_length
        if was_truncated(text, max_length):
            logger.warning(
                "settlement_search_truncated",
                extra={"length": len(text), "max_length": max_length},
            )
        term = sanitize_search_text(
            text, max_length, self._policy.search_strip_pattern
        )
        if term is None:
            return []
        return self._trades.search_by_settlement_instructions(term)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(self, trade_input: TradeInput) -> None:
        result = self._validator.validate_trade_business_rules(trade_input)
        if trade_input.legs is None:
            # Business rules only check legs that were sent.
            result.merge(self._validator.validate_trade_leg_consistency(None))
        result.raise_if_failed()

    def _is_settlement_editor(self, user_id: str | None) -> bool:
        return self._privileges.has_any_role(
            user_id, *self._policy.settlement_editor_roles
        )

    def _lock_active(self, trade_id: int) -> Trade:
        trade = self.session.execute(
            select(Trade)
            .where(Trade.trade_id == trade_id, Trade.active.is_(True))
            .with_for_update()
        ).scalar_one_or_none()
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return trade

    def _require_status(self, ref: EntityRef) -> TradeStatus:
        status = self._reference_data.resolve(TradeStatus, ref)
        if status is None:
            raise TradeStatusNotFoundError(str(ref))
        return status

    def _next_free_trade_id(self) -> int:
        """Next sequence value not already taken by an explicitly booked trade."""
        trade_id = self._sequence.next_trade_id(self._policy.trade_id_base)
        while self._trades.get_versions(trade_id):
            logger.info("trade_id_skipped", extra={"skipped_trade_id": trade_id})
            trade_id = self._sequence.next_trade_id(self._policy.trade_id_base)
        return trade_id

    def _optional(self, model: type, ref: EntityRef | str | None) -> Any:
        ref = EntityRef.of(ref)
        if not ref.is_set:
            return None
        return self._reference_data.require(model, ref)

    def _resolve_trade_refs(
        self,
        trade_input: TradeInput,
        user_id: str,
        status: TradeStatus,
    ) -> _TradeRefs:
        inputter_ref = trade_input.inputter_user
        if not inputter_ref.is_set:
            inputter_ref = EntityRef.by_name(user_id)
        return _TradeRefs(
            book=self._reference_data.require(Book, trade_input.book),
            counterparty=self._reference_data.require(
                Counterparty, trade_input.counterparty
            ),
            trade_status=status,
            trade_type=self._optional(TradeType, trade_input.trade_type),
            trade_sub_type=self._optional(TradeSubType, trade_input.trade_sub_type),
            trader_user=self._reference_data.require(
                ApplicationUser, trade_input.trader_user
            ),
            inputter_user=self._reference_data.resolve(ApplicationUser, inputter_ref),
        )

    def _resolve_legs(self, legs: tuple[TradeLegInput, ...] | None) -> list[_LegRefs]:
        resolved = []
        for leg in legs or ():
            resolved.append(
                _LegRefs(
                    leg_input=leg,
                    pay_rec=self._reference_data.require(PayRec, leg.pay_receive_flag),
                    leg_type=self._reference_data.require(LegType, leg.leg_type),
                    currency=self._reference_data.require(Currency, leg.currency),
                    index=self._optional(RateIndex, leg.index),
                    schedule=self._optional(Schedule, leg.calculation_period_schedule),
                    holiday_calendar=self._optional(
                        HolidayCalendar, leg.holiday_calendar
                    ),
                    payment_bdc=self._optional(
                        BusinessDayConvention, leg.payment_business_day_convention
                    ),
                    fixing_bdc=self._optional(
                        BusinessDayConvention, leg.fixing_business_day_convention
                    ),
                )
            )
        return resolved

    def _insert_version(
        self,
        trade_id: int,
        version: int,
        trade_input: TradeInput,
        refs: _TradeRefs,
        legs: list[_LegRefs],
        user_id: str,
    ) -> Trade:
        now = self._clock.now()
        trade = Trade(
            trade_id=trade_id,
            version=version,
            active=True,
            trade_date=trade_input.trade_date,
            trade_start_date=trade_input.trade_start_date,
            trade_maturity_date=trade_input.trade_maturity_date,
            trade_execution_date=trade_input.trade_execution_date,
            validity_start_date=trade_input.validity_start_date,
            uti_code=trade_input.uti_code,
            created_date=now,
            last_touch_timestamp=now,
            book=refs.book,
            counterparty=refs.counterparty,
            trade_status=refs.trade_status,
            trade_type=refs.trade_type,
            trade_sub_type=refs.trade_sub_type,
            trader_user=refs.trader_user,
            inputter_user=refs.inputter_user,
            created_by=user_id,
        )
        self.session.add(trade)

        for leg_number, leg in enumerate(legs, start=1):
            trade.legs.append(TradeLeg(
                leg_number=leg_number,
                notional=leg.leg_input.notional,
                rate=leg.leg_input.rate,
                active=True,
                created_date=now,
                pay_receive_flag=leg.pay_rec,
                leg_type=leg.leg_type,
                currency=leg.currency,
                index=leg.index,
                calculation_period_schedule=leg.schedule,
                holiday_calendar=leg.holiday_calendar,
                payment_business_day_convention=leg.payment_bdc,
                fixing_business_day_convention=leg.fixing_bdc,
                created_by=user_id,
            ))
        self.session.flush()

        start, maturity = trade.trade_start_date, trade.trade_maturity_date
        if start is not None and maturity is not None:
            for leg in trade.legs:
                self._cashflows.generate_cashflows(leg, start, maturity)
        return trade
