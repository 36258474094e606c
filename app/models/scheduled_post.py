"""
ScheduledPost model for Business Profile local posts.
"""
from sqlalchemy import Column, String, Text, JSON, Index
from sqlalchemy.orm import relationship
from ..database import Base
from .scheduled_item import ScheduledItemMixin


class ScheduledPost(ScheduledItemMixin, Base):
    __tablename__ = "scheduled_posts"
    __table_args__ = (
        Index("ix_scheduled_posts_user_location", "user_id", "location_id"),
        Index("ix_scheduled_posts_status_time", "status", "scheduled_publish_time"),
    )

    summary = Column(Text, nullable=False)
    topic_type = Column(String(20), nullable=False, default="STANDARD")  # STANDARD, EVENT, OFFER, ALERT
    action_type = Column(String(20), nullable=False, default="LEARN_MORE")
    action_url = Column(Text, nullable=True)
    media_url = Column(Text, nullable=True)
    language_code = Column(String(10), default="en")
    # "metadata" is reserved on declarative classes
    post_metadata = Column("metadata", JSON, nullable=True)  # event/offer/alert details by topic_type
    external_post_id = Column(String(255), nullable=True)

    # Relationships
    user = relationship("User", back_populates="scheduled_posts")
