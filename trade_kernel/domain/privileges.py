"""
Role -> permitted operation table.

Pure data plus a lookup.  The table is loaded from configuration
(``role_permissions`` in the trade config set); new roles or operations are
a config change, not a code change.  The wildcard ``"*"`` grants every
operation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from trade_kernel.domain.operations import TradeOperation

WILDCARD = "*"


@dataclass(frozen=True)
class RolePermissionTable:
    """
    Immutable mapping from upper-cased role name to allowed operations.

    Roles absent from the table are denied everything.
    """

    grants: Mapping[str, frozenset[TradeOperation]]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> RolePermissionTable:
        grants: dict[str, frozenset[TradeOperation]] = {}
        for role, operations in mapping.items():
            allowed: set[TradeOperation] = set()
            for op in operations:
                if str(op).strip() == WILDCARD:
                    allowed.update(TradeOperation)
                    continue
                parsed = TradeOperation.parse(op)
                if parsed is None:
                    raise ValueError(f"Unknown trade operation {op!r} for role {role!r}")
                allowed.add(parsed)
            grants[str(role).strip().upper()] = frozenset(allowed)
        return cls(grants=MappingProxyType(grants))

    def operations_for(self, role: str | None) -> frozenset[TradeOperation]:
        if not role:
            return frozenset()
        return self.grants.get(role.strip().upper(), frozenset())

    def allows(self, role: str | None, operation: TradeOperation) -> bool:
        return operation in self.operations_for(role)

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(sorted(self.grants))
