"""Trade operations subject to privilege checks."""

from __future__ import annotations

from enum import Enum


class TradeOperation(str, Enum):
    CREATE = "CREATE"
    AMEND = "AMEND"
    TERMINATE = "TERMINATE"
    CANCEL = "CANCEL"
    VIEW = "VIEW"

    @classmethod
    def parse(cls, value: TradeOperation | str | None) -> TradeOperation | None:
        """Case-insensitive lookup; None for anything unrecognised."""
        if value is None:
            return None
        if isinstance(value, TradeOperation):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None
