"""
Database models for Content Vault
"""
from .user import User
from .project import Project, ContentItem, ContentType
from .entitlement import ProjectEntitlement, Selection, SelectionType
from .payment import Payment, PaymentStatus, PaymentEvent, Download

__all__ = [
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
