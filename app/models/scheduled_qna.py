"""
ScheduledQnA model: a question (and optional answer) queued for a Business Profile.
"""
from sqlalchemy import Column, String, Text, Index
from sqlalchemy.orm import relationship
from ..database import Base
from .scheduled_item import ScheduledItemMixin


class ScheduledQnA(ScheduledItemMixin, Base):
    __tablename__ = "scheduled_qna"
    __table_args__ = (
        Index("ix_scheduled_qna_user_location", "user_id", "location_id"),
        Index("ix_scheduled_qna_status_time", "status", "scheduled_publish_time"),
    )

    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=True)
    external_question_id = Column(String(255), nullable=True)
    external_answer_id = Column(String(255), nullable=True)

    # Relationships
    user = relationship("User", back_populates="scheduled_qna")
