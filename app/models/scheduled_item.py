"""
Columns shared by scheduled Q&A and scheduled posts.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import declared_attr
from datetime import datetime, timezone


class ScheduledItemMixin:
    """Tenant ownership, publish time, status lifecycle and batch correlation."""

    id = Column(Integer, primary_key=True, index=True)

    @declared_attr
    def user_id(cls):
        return Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    location_id = Column(String(255), nullable=True)
    account_name = Column(String(255), nullable=True)  # "accounts/1128"
    scheduled_publish_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, publishing, published, failed
    published_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    batch_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)
