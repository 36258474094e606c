from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from .scheduled_qna import BatchUpdateFields, PublishTime


class PostEntry(BaseModel):
    summary: Optional[str] = None
    topic_type: Optional[str] = None
    action_type: Optional[str] = None
    action_url: Optional[str] = None
    media_url: Optional[str] = None
    language_code: Optional[str] = None
    metadata: Optional[Any] = None
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None


class ScheduledPostCreate(BaseModel):
    user_id: Optional[str] = None
    posts: List[PostEntry] = []
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None


class ScheduledPostUpdate(BaseModel):
    summary: Optional[str] = None
    topic_type: Optional[str] = None
    action_type: Optional[str] = None
    action_url: Optional[str] = None
    media_url: Optional[str] = None
    language_code: Optional[str] = None
    metadata: Optional[Any] = None
    scheduled_publish_time: Optional[PublishTime] = None
    location_id: Optional[str] = None
    account_name: Optional[str] = None


class ScheduledPostBulkUpdate(BaseModel):
    user_id: Optional[str] = None
    post_ids: List[int] = []
    batch_id: Optional[str] = None
    updates: BatchUpdateFields
