"""
PrivilegeService -- role-based authorization for trade operations.

Responsibility:
    Answers "may this caller perform this operation?" from the caller's
    user record and the configured RolePermissionTable.

Architecture position:
    Kernel > Services.  Reads users and profiles through
    ReferenceDataService; writes nothing.

Invariants enforced:
    - Fail closed: unknown or inactive user, user without a profile, or an
      operation outside CREATE/AMEND/TERMINATE/CANCEL/VIEW all deny.
    - Role names compare case-insensitively.
    - No branching on role names here; the table decides.
"""

from typing import Any

from sqlalchemy.orm import Session

from trade_kernel.domain.operations import TradeOperation
from trade_kernel.domain.privileges import RolePermissionTable
from trade_kernel.exceptions import InsufficientPrivilegeError
from trade_kernel.logging_config import get_logger
from trade_kernel.models.reference import ApplicationUser
from trade_kernel.services.base import BaseService
from trade_kernel.services.reference_data_service import ReferenceDataService

logger = get_logger("services.privilege")


class PrivilegeService(BaseService):
    """Authorization decisions for trade lifecycle operations."""

    def __init__(
        self,
        session: Session,
        permissions: RolePermissionTable,
        reference_data: ReferenceDataService | None = None,
    ):
        super().__init__(session)
        self._permissions = permissions
        self._reference_data = reference_data or ReferenceDataService(session)

    def _active_user(self, user_id: str | None) -> ApplicationUser | None:
        if not user_id:
            return None
        user = self._reference_data.find_user(user_id)
        if user is None or not user.active:
            return None
        return user

    def authorize(
        self,
        user_id: str | None,
        operation: TradeOperation | str | None,
        trade_context: Any = None,
    ) -> bool:
        """
        True when ``user_id`` may perform ``operation``.

        ``trade_context`` is accepted for callers that have the trade at
        hand; the current table does not consult it.
        """
        op = TradeOperation.parse(operation)
        if op is None:
            logger.debug(
                "privilege_denied",
                extra={"user_id": user_id, "operation": str(operation), "reason": "unknown_operation"},
            )
            return False

        user = self._active_user(user_id)
        if user is None:
            logger.debug(
                "privilege_denied",
                extra={"user_id": user_id, "operation": op.value, "reason": "unknown_or_inactive_user"},
            )
            return False

        role = user.role
        if role is None:
            logger.debug(
                "privilege_denied",
                extra={"user_id": user_id, "operation": op.value, "reason": "no_profile"},
            )
            return False

        allowed = self._permissions.allows(role, op)
        logger.debug(
            "privilege_checked",
            extra={
                "user_id": user_id,
                "operation": op.value,
                "role": role,
                "allowed": allowed,
            },
        )
        return allowed

    def require(self, user_id: str | None, operation: TradeOperation | str) -> None:
        """Raise InsufficientPrivilegeError unless ``authorize()`` passes."""
        if not self.authorize(user_id, operation):
            op = TradeOperation.parse(operation)
            name = op.value if op is not None else str(operation)
            logger.warning(
                "privilege_rejected",
                extra={"user_id": user_id, "operation": name},
            )
            raise InsufficientPrivilegeError(user_id, name)

    def has_any_role(self, user_id: str | None, *roles: str) -> bool:
        """True when the active user's role is one of ``roles`` (any case)."""
        user = self._active_user(user_id)
        if user is None or user.role is None:
            return False
        wanted = {r.strip().upper() for r in roles if r}
        return user.role in wanted
