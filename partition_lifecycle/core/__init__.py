"""Core infrastructure components."""

from partition_lifecycle.core.config import Settings, get_settings
from partition_lifecycle.core.database import (
    close_db,
    get_session,
    get_session_factory,
    init_db,
)
from partition_lifecycle.core.logging import (
    get_logger,
    get_run_id,
    set_run_id,
    setup_logging,
)

__all__ = [
    "Settings",
    "close_db",
    "get_logger",
    "get_run_id",
    "get_session",
    "get_session_factory",
    "get_settings",
    "init_db",
    "set_run_id",
    "setup_logging",
]
