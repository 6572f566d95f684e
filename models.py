"""SQLAlchemy models for the Baptism Gallery database"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Event(Base):
    """A baptism event that groups photos and videos"""
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(Date, nullable=False, index=True)
    location = Column(String(500), nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    media = relationship(
        "MediaRecord",
        back_populates="event",
        cascade="all, delete-orphan",
    )


class MediaRecord(Base):
    """A stored photo or video with its AI-generated metadata"""
    __tablename__ = "photos"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_id = Column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True
    )
    url = Column(String(1000), nullable=False)
    media_type = Column(String(20), nullable=False, default="photo")  # "photo" or "video"

    description = Column(Text, nullable=True)  # user-entered (or copied from AI)
    ai_description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    faces_count = Column(Integer, nullable=True)
    setting = Column(String(255), nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)

    file_size = Column(Integer, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    event_date = Column(Date, nullable=True)
    uploaded_by = Column(String(36), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    event = relationship("Event", back_populates="media")


class User(Base):
    """Gallery administrators"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="admin")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)
