"""
TradeValidator -- business-rule and cross-leg validation of proposed trades.

Responsibility:
    Checks a TradeInput before anything is written: mandatory and ordered
    dates, the trade-date age window, trader/book/counterparty existence and
    active flags, status/type/sub-type validity, and (when legs are sent)
    the cross-leg rules from domain.leg_rules.

Architecture position:
    Kernel > Services.  Reads reference data; never writes.  Returns a
    ValidationResult; TradeService decides whether to raise.

Invariants enforced:
    - Accumulate, do not fail fast: every applicable message is returned,
      in a stable order (dates, parties, reference data, legs).
    - "Today" comes from the injected Clock.
"""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from trade_kernel.domain.clock import Clock
from trade_kernel.domain.dtos import EntityRef, TradeInput, TradeLegInput
from trade_kernel.domain.leg_rules import check_leg_consistency
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.domain.validation import ValidationResult
from trade_kernel.logging_config import get_logger
from trade_kernel.models.reference import (
    ApplicationUser,
    Book,
    Counterparty,
    TradeStatus,
    TradeSubType,
    TradeType,
)
from trade_kernel.services.base import BaseService
from trade_kernel.services.reference_data_service import ReferenceDataService

logger = get_logger("services.trade_validator")

MANDATORY_DATES_ERROR = "Trade Date, Start Date, and Maturity Date are mandatory."


def _ref_label(ref: EntityRef) -> str:
    return "ID" if ref.id is not None else "Name"


class TradeValidator(BaseService):
    """Validation engine for proposed trade versions."""

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy | None = None,
        reference_data: ReferenceDataService | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or LifecyclePolicy.standard()
        self._reference_data = reference_data or ReferenceDataService(session)

    def validate_trade_business_rules(self, trade_input: TradeInput) -> ValidationResult:
        result = ValidationResult()

        self._check_dates(trade_input, result)
        self._check_active_party(
            ApplicationUser,
            trade_input.trader_user,
            result,
            missing="Trader user ID is mandatory for status validation.",
            invalid="Trader user is inactive or does not exist (ID: {ref}).",
        )
        self._check_active_party(
            Book,
            trade_input.book,
            result,
            missing="Book ID is mandatory.",
            invalid="Trade Book is inactive or does not exist (ID: {ref}).",
        )
        self._check_active_party(
            Counterparty,
            trade_input.counterparty,
            result,
            missing="Counterparty ID is mandatory.",
            invalid="Counterparty is inactive or does not exist (ID: {ref}).",
        )
        self._check_reference(TradeStatus, "Trade Status", trade_input.trade_status, result)
        self._check_reference(TradeType, "Trade Type", trade_input.trade_type, result)
        self._check_sub_type(trade_input.trade_sub_type, result)

        if trade_input.legs is not None:
            result.merge(self.validate_trade_leg_consistency(trade_input.legs))

        if not result.successful:
            logger.info(
                "trade_validation_failed",
                extra={
                    "trade_id": trade_input.trade_id,
                    "error_count": len(result.errors),
                },
            )
        return result

    def validate_trade_leg_consistency(
        self,
        legs: Sequence[TradeLegInput] | None,
    ) -> ValidationResult:
        return check_leg_consistency(legs)

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def _check_dates(self, trade_input: TradeInput, result: ValidationResult) -> None:
        trade_date = trade_input.trade_date
        start_date = trade_input.trade_start_date
        maturity_date = trade_input.trade_maturity_date

        if trade_date is None or start_date is None or maturity_date is None:
            result.add_error(MANDATORY_DATES_ERROR)

        if maturity_date is not None and start_date is not None and maturity_date < start_date:
            result.add_error(
                f"Maturity Date ({maturity_date}) cannot be before Start Date ({start_date})."
            )

        if maturity_date is not None and trade_date is not None and maturity_date < trade_date:
            result.add_error(
                f"Maturity Date ({maturity_date}) cannot be before Trade Date ({trade_date})."
            )

        if trade_date is not None:
            age_days = (self._clock.today() - trade_date).days
            max_age = self._policy.max_trade_date_age_days
            if age_days > max_age:
                result.add_error(
                    f"Trade Date ({trade_date}) is more than {max_age} days in the past."
                )

    def _check_active_party(
        self,
        model: type,
        ref: EntityRef,
        result: ValidationResult,
        missing: str,
        invalid: str,
    ) -> None:
        if not ref.is_set:
            result.add_error(missing)
            return
        row = self._reference_data.resolve(model, ref)
        if row is None or not self._reference_data.exists_by_id_and_active(model, row.id):
            result.add_error(invalid.format(ref=ref))

    def _check_reference(
        self,
        model: type,
        label: str,
        ref: EntityRef,
        result: ValidationResult,
    ) -> None:
        if not ref.is_set:
            return
        if self._reference_data.resolve(model, ref) is None:
            result.add_error(
                f"{label} is invalid or does not exist ({_ref_label(ref)}: {ref})."
            )

    def _check_sub_type(self, ref: EntityRef, result: ValidationResult) -> None:
        if not ref.is_set:
            return
        if self._reference_data.resolve(TradeSubType, ref) is not None:
            return
        if ref.id is not None:
            result.add_error(
                f"Trade Sub Type ID is invalid or does not exist (ID: {ref.id})."
            )
        else:
            result.add_error(
                f"Trade Sub Type is invalid or does not exist (Name: {ref.name})."
            )
