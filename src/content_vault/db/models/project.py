"""
Project and content item models
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Text, Index
from sqlalchemy.orm import relationship

from ..base import Base


class ContentType(str, enum.Enum):
    """Content type enum"""
    VIDEO = "video"
    HEADSHOT = "headshot"


def _new_project_id() -> str:
    return str(uuid.uuid4())


class Project(Base):
    """A client's collection of content items with its own limits and prices"""
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_new_project_id)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    free_video_limit = Column(Integer, nullable=False, default=3)
    # NULL falls back to DEFAULT_FREE_HEADSHOT_LIMIT
    free_headshot_limit = Column(Integer, nullable=True)

    additional_3_videos_price = Column(Numeric(10, 2), nullable=False, default=199)
    all_content_price = Column(Numeric(10, 2), nullable=False, default=499)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User")
    content_items = relationship("ContentItem", back_populates="project", order_by="ContentItem.id")


class ContentItem(Base):
    """Single downloadable video or headshot. File bytes live elsewhere."""
    __tablename__ = "content_items"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, index=True)  # 'video', 'headshot'
    category = Column(String, nullable=True)
    filename = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=25)

    # Mutable metadata
    thumbnail_url = Column(String, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    aspect_ratio = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="content_items")

    __table_args__ = (
        Index("idx_content_items_project_type", "project_id", "type"),
    )
