"""
User model; one row per tenant.
"""
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class User(Base):
    __tablename__ = "users"

    # Identity-provider user id, e.g. "user_2abc..."
    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    settings = relationship("UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    google_token = relationship("GoogleOAuthToken", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    scheduled_qna = relationship("ScheduledQnA", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    scheduled_posts = relationship("ScheduledPost", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
