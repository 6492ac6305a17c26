"""Database layer: declarative base, engine/session management, append-only listeners."""

from trade_kernel.db.base import Base, TrackedBase, UUIDString
from trade_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from trade_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
]
