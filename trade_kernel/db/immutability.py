"""
ORM-Level Append-Only Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Trades and settlement instructions are versioned, not edited.  An amendment
is a new row; the previous row only has its ``active`` flag cleared and its
``deactivated_date`` stamped.  Legs and cashflows are written once.  These
listeners reject any flush that would break that shape:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
    [before_delete event] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Mutable after insert                          | Delete
----------------|-----------------------------------------------|--------
Trade           | active (true -> false only), deactivated_date,| never
                | trade_status_id, last_touch_timestamp;        |
                | nothing once the version is inactive          |
TradeLeg        | nothing                                       | never
Cashflow        | nothing                                       | never
AdditionalInfo  | active (true -> false only), deactivated_date,| never
                | last_modified_date                            |

updated_at is audit metadata and may always change.

Only column attributes are checked.  Appending a cashflow to a leg's
collection marks the leg dirty without changing any of its columns.

===============================================================================
USAGE
===============================================================================

    from trade_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from trade_kernel.exceptions import ImmutabilityViolationError
from trade_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at"})

_TRADE_MUTABLE = frozenset(
    {"active", "deactivated_date", "trade_status_id", "last_touch_timestamp"}
)

_ADDITIONAL_INFO_MUTABLE = frozenset(
    {"active", "deactivated_date", "last_modified_date"}
)


def _changed_columns(target) -> list[str]:
    """Names of column attributes with pending changes on ``target``."""
    insp = inspect(target)
    changed = []
    for column_attr in insp.mapper.column_attrs:
        key = column_attr.key
        if key in _AUDIT_FIELDS:
            continue
        if insp.attrs[key].history.has_changes():
            changed.append(key)
    return changed


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _was_active(target) -> bool:
    """The ``active`` value as loaded from the database."""
    hist = inspect(target).attrs["active"].history
    if hist.deleted:
        return bool(hist.deleted[0])
    return bool(target.active)


def _check_versioned_update(entity_type: str, mutable: frozenset[str], target) -> None:
    changed = _changed_columns(target)
    if not changed:
        return

    if not _was_active(target):
        _block(
            entity_type,
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on an inactive version",
        )

    for key in changed:
        if key not in mutable:
            _block(
                entity_type,
                target,
                "UPDATE",
                f"Field '{key}' is fixed once the version is written; "
                "create a new version instead",
            )

    if target.active and "active" in changed:
        _block(entity_type, target, "UPDATE", "Versions cannot be reactivated")


def _check_trade_update(mapper, connection, target):
    _check_versioned_update("Trade", _TRADE_MUTABLE, target)


def _check_additional_info_update(mapper, connection, target):
    _check_versioned_update("AdditionalInfo", _ADDITIONAL_INFO_MUTABLE, target)


def _check_write_once_update(mapper, connection, target):
    changed = _changed_columns(target)
    if changed:
        _block(
            type(target).__name__,
            target,
            "UPDATE",
            f"{type(target).__name__} rows are write-once (field '{changed[0]}')",
        )


def _check_delete(mapper, connection, target):
    _block(
        type(target).__name__,
        target,
        "DELETE",
        f"{type(target).__name__} rows are never physically deleted",
    )


def _listener_table():
    from trade_kernel.models.additional_info import AdditionalInfo
    from trade_kernel.models.trade import Cashflow, Trade, TradeLeg

    return [
        (Trade, "before_update", _check_trade_update),
        (Trade, "before_delete", _check_delete),
        (TradeLeg, "before_update", _check_write_once_update),
        (TradeLeg, "before_delete", _check_delete),
        (Cashflow, "before_update", _check_write_once_update),
        (Cashflow, "before_delete", _check_delete),
        (AdditionalInfo, "before_update", _check_additional_info_update),
        (AdditionalInfo, "before_delete", _check_delete),
    ]


def register_immutability_listeners():
    """
    Register all append-only enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove append-only enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listener_table():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
