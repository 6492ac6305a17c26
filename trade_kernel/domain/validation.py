"""
Accumulating validation result.

Pure value with no I/O.  Checks append to it instead of raising so that a
caller sees every defect in one pass; the service converts an unsuccessful
result into TradeValidationError.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from trade_kernel.exceptions import TradeValidationError

SUCCESS_MESSAGE = "Validation successful."


@dataclass
class ValidationResult:
    """Ordered list of error messages; successful while the list is empty."""

    errors: list[str] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_errors(self, messages: Iterable[str]) -> None:
        self.errors.extend(messages)

    def merge(self, other: ValidationResult) -> ValidationResult:
        self.add_errors(other.errors)
        return self

    def to_error_message(self) -> str:
        if self.successful:
            return SUCCESS_MESSAGE
        return "; ".join(self.errors)

    def raise_if_failed(self) -> None:
        """Raise TradeValidationError carrying every message, in order."""
        if not self.successful:
            raise TradeValidationError(list(self.errors))
