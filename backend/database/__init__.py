"""
Database package for the equipment inventory
"""
from .config import database_settings, inventory_settings
from .connection import (
    Base,
    get_engine,
    get_session_maker,
    init_db,
    get_session,
    close_db
)
from .models import (
    EquipmentRow,
    HistoryEntryRow,
    AttachmentRow,
    PurchaseRequestRow,
    ResponsibilityTermRow
)

__all__ = [
    # Config
    "database_settings",
    "inventory_settings",
    # Connection
    "Base",
    "get_engine",
    "get_session_maker",
    "init_db",
    "get_session",
    "close_db",
    # Models
    "EquipmentRow",
    "HistoryEntryRow",
    "AttachmentRow",
    "PurchaseRequestRow",
    "ResponsibilityTermRow"
]
