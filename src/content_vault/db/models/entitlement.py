"""
Entitlement models: package ownership flags and free selections
"""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ..base import Base


class SelectionType(str, enum.Enum):
    FREE = "free"


class ProjectEntitlement(Base):
    """
    Package ownership for one user in one project.

    Flags only move from False to True; the admin revoke endpoint is the
    single path that clears them.
    """
    __tablename__ = "project_entitlements"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    has_additional_3_videos = Column(Boolean, default=False, nullable=False)
    has_all_remaining_content = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="entitlements")
    project = relationship("Project")

    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_project_entitlements_user_project"),
    )


class Selection(Base):
    """Free selection of a content item"""
    __tablename__ = "selections"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    content_item_id = Column(Integer, ForeignKey("content_items.id"), nullable=False, index=True)
    content_type = Column(String, nullable=False)  # copied from the item for quota counting
    selection_type = Column(String, nullable=False, default=SelectionType.FREE.value)
    selected_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="selections")
    content_item = relationship("ContentItem")

    __table_args__ = (
        UniqueConstraint("user_id", "content_item_id", name="uq_selections_user_content_item"),
        Index("idx_selections_user_project_type", "user_id", "project_id", "content_type"),
    )
