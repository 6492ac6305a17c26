"""Services for the trade kernel (write side)."""

from trade_kernel.services.additional_info_service import (
    AdditionalInfoKey,
    AdditionalInfoRecord,
    AdditionalInfoService,
)
from trade_kernel.services.cashflow_generator import CashflowGenerator
from trade_kernel.services.privilege_service import PrivilegeService
from trade_kernel.services.reference_data_service import ReferenceDataService
from trade_kernel.services.sequence_service import SequenceService
from trade_kernel.services.trade_service import TradeService
from trade_kernel.services.trade_validator import TradeValidator

__all__ = [
    "AdditionalInfoKey",
    "AdditionalInfoRecord",
    "AdditionalInfoService",
    "CashflowGenerator",
    "PrivilegeService",
    "ReferenceDataService",
    "SequenceService",
    "TradeService",
    "TradeValidator",
]
