from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional, Union

PublishTime = Union[datetime, int, float, str]


class QnAEntry(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None


class ScheduledQnACreate(BaseModel):
    user_id: Optional[str] = None
    qna: List[QnAEntry] = []
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None


class ScheduledQnAUpdate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None


class ResubmitRequest(BaseModel):
    scheduled_publish_time: Optional[PublishTime] = None


class BatchUpdateFields(BaseModel):
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None

    class Config:
        extra = "forbid"


class ScheduledQnABulkUpdate(BaseModel):
    user_id: Optional[str] = None
    qna_ids: List[int] = []
    batch_id: Optional[str] = None
    updates: BatchUpdateFields
