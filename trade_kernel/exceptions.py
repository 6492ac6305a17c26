"""
Typed Exception Hierarchy for the Trade Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A trade-entry workflow reports failures back to a trader who has to fix
them and resubmit.  Callers must be able to tell a rejected trade from a
missing one from a permission problem without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        trade_service.create_trade(trade_input, user_id="jsmith")
    except TradeValidationError as e:
        return {"error": e.code, "messages": e.errors}
    except InsufficientPrivilegeError as e:
        return {"error": e.code, "user": e.user_id, "operation": e.operation}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TradeKernelError (base)
    |
    +-- ValidationFailure
    |   +-- TradeValidationError
    |
    +-- AuthorizationFailure
    |   +-- InsufficientPrivilegeError
    |
    +-- NotFoundError
    |   +-- TradeNotFoundError
    |   +-- TradeStatusNotFoundError
    |   +-- ReferenceDataNotFoundError
    |   +-- AdditionalInfoNotFoundError
    |
    +-- MalformedInputError
    |   +-- InvalidScheduleError
    |   +-- InvalidSettlementInstructionsError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-------------------------------------
Validation      | TRADE_VALIDATION_FAILED       | Business-rule or leg checks failed
Authorization   | INSUFFICIENT_PRIVILEGE        | Role does not permit the operation
Not found       | TRADE_NOT_FOUND               | No active version for the trade id
                | TRADE_STATUS_NOT_FOUND        | Required status row is missing
                | REFERENCE_DATA_NOT_FOUND      | Required reference row is missing
                | ADDITIONAL_INFO_NOT_FOUND     | No active row for the key
Malformed input | INVALID_SCHEDULE              | Schedule string cannot be parsed
                | INVALID_SETTLEMENT_INSTRUCTIONS | SI text fails the content pattern
Concurrency     | OPTIMISTIC_LOCK_CONFLICT      | Active version moved underneath us
Immutability    | IMMUTABILITY_VIOLATION        | Write to an append-only record

===============================================================================
PROPAGATION
===============================================================================

Validation and authorization failures are raised before any row is
touched.  Services only flush, so a raised exception leaves the caller's
transaction to roll back as a whole.  The single deliberate exception is
settlement instructions supplied on an amendment by a caller without the
TRADER_SALES role: that update is skipped and logged, it does not raise.
"""


class TradeKernelError(Exception):
    """
    Base exception for all trade kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TRADE_KERNEL_ERROR"


# Validation


class ValidationFailure(TradeKernelError):
    """Base exception for rejected trade input."""

    code: str = "VALIDATION_FAILURE"


class TradeValidationError(ValidationFailure):
    """Business-rule or cross-leg validation failed.

    ``errors`` keeps every message in the order the checks produced them.
    """

    code: str = "TRADE_VALIDATION_FAILED"

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


# Authorization


class AuthorizationFailure(TradeKernelError):
    """Base exception for privilege failures."""

    code: str = "AUTHORIZATION_FAILURE"


class InsufficientPrivilegeError(AuthorizationFailure):
    """Caller's role does not permit the requested operation."""

    code: str = "INSUFFICIENT_PRIVILEGE"

    def __init__(self, user_id: str | None, operation: str, target: str = "this trade"):
        self.user_id = user_id
        self.operation = operation
        verb = operation.lower().replace("_", " ")
        super().__init__(
            f"User {user_id} does not have privileges to {verb} {target}."
        )


# Not found


class NotFoundError(TradeKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class TradeNotFoundError(NotFoundError):
    """No active version exists for the business trade id."""

    code: str = "TRADE_NOT_FOUND"

    def __init__(self, trade_id: int):
        self.trade_id = trade_id
        super().__init__(f"Trade not found or inactive for ID: {trade_id}")


class TradeStatusNotFoundError(NotFoundError):
    """A status row required by a lifecycle transition is missing."""

    code: str = "TRADE_STATUS_NOT_FOUND"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"{status} status not found")


class ReferenceDataNotFoundError(NotFoundError):
    """Required reference data is missing or not set."""

    code: str = "REFERENCE_DATA_NOT_FOUND"

    def __init__(self, kind: str, reference: str | None = None):
        self.kind = kind
        self.reference = reference
        detail = f" ({reference})" if reference else ""
        super().__init__(f"{kind} not found or not set{detail}")


class AdditionalInfoNotFoundError(NotFoundError):
    """No active additional-info row for the key."""

    code: str = "ADDITIONAL_INFO_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str, field_name: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field_name = field_name
        super().__init__(
            f"No active {field_name} for {entity_type} {entity_id}"
        )


# Malformed input


class MalformedInputError(TradeKernelError):
    """Base exception for input that cannot be interpreted."""

    code: str = "MALFORMED_INPUT"


class InvalidScheduleError(MalformedInputError):
    """Calculation-period schedule string is not recognised."""

    code: str = "INVALID_SCHEDULE"

    def __init__(self, schedule: str):
        self.schedule = schedule
        super().__init__(
            f"Invalid schedule format: {schedule}. Supported formats: "
            "Monthly, Quarterly, Semi-annually, Annually, or 1M, 3M, 6M, 12M"
        )


class InvalidSettlementInstructionsError(MalformedInputError):
    """Settlement instruction text fails the content allow-list."""

    code: str = "INVALID_SETTLEMENT_INSTRUCTIONS"

    def __init__(self, length: int):
        self.length = length
        super().__init__(
            "Settlement instructions contain prohibited special characters "
            "or do not meet length requirements."
        )


# Concurrency


class ConcurrencyError(TradeKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """The active version differs from the version the caller amended."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, trade_id: int, expected_version: int, actual_version: int):
        self.trade_id = trade_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Trade {trade_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )


# Immutability


class ImmutabilityError(TradeKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
