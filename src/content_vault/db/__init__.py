"""
Database module for Content Vault
"""
from .engine import engine, SessionLocal, get_db, create_database_engine
from .base import Base
from .models import (
    User,
    Project,
    ContentItem,
    ContentType,
    ProjectEntitlement,
    Selection,
    SelectionType,
    Payment,
    PaymentStatus,
    PaymentEvent,
    Download,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "create_database_engine",
    "Base",
    "User",
    "Project",
    "ContentItem",
    "ContentType",
    "ProjectEntitlement",
    "Selection",
    "SelectionType",
    "Payment",
    "PaymentStatus",
    "PaymentEvent",
    "Download",
]
