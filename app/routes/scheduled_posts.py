"""
Scheduled post routes for Google Business Profile local posts.
"""
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session
from typing import Optional

from ..auth import get_current_tenant, resolve_tenant_id
from ..config import get_settings
from ..database import get_db
from ..limiter import limiter
from ..models.scheduled_post import ScheduledPost
from ..models.user import User
from ..schemas.scheduled_post import ScheduledPostBulkUpdate, ScheduledPostCreate, ScheduledPostUpdate
from ..schemas.scheduled_qna import ResubmitRequest
from ..services.batch_submission import BatchSubmissionService
from ..services.scheduled_items import ScheduledPostStore
from ..services.timeutil import isoformat

router = APIRouter(prefix="/api/scheduled-posts", tags=["scheduled-posts"])
settings = get_settings()


def post_to_dict(item: ScheduledPost) -> dict:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "location_id": item.location_id,
        "account_name": item.account_name,
        "summary": item.summary,
        "topic_type": item.topic_type,
        "action_type": item.action_type,
        "action_url": item.action_url,
        "media_url": item.media_url,
        "language_code": item.language_code,
        "metadata": item.post_metadata,
        "scheduled_publish_time": isoformat(item.scheduled_publish_time),
        "status": item.status,
        "published_at": isoformat(item.published_at),
        "batch_id": item.batch_id,
        "external_post_id": item.external_post_id,
        "last_error": item.last_error,
        "created_at": isoformat(item.created_at),
        "updated_at": isoformat(item.updated_at),
    }


def _entry(entry) -> dict:
    data = entry.model_dump()
    if data.get("scheduled_publish_time") is None:
        data.pop("scheduled_publish_time")
    return data


@router.post("", status_code=201)
@limiter.limit(settings.schedule_rate_limit)
def schedule_posts(
    request: Request,
    payload: ScheduledPostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Schedule a batch of posts; an entry's own publish time overrides the batch time."""
    tenant_id = resolve_tenant_id(current_user, payload.user_id)
    result = BatchSubmissionService(db).submit_posts(
        tenant_id,
        [_entry(entry) for entry in payload.posts],
        payload.scheduled_publish_time,
        location_id=payload.location_id,
        account_name=payload.account_name,
    )
    return {"success": True, "batchId": result.batch_id, "ids": result.ids}


@router.get("")
def list_posts(
    user_id: Optional[str] = None,
    location_id: Optional[str] = None,
    status: Optional[str] = None,
    batch_id: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    tenant_id = resolve_tenant_id(current_user, user_id)
    items = ScheduledPostStore(db).list(
        tenant_id, location_id=location_id, status=status, batch_id=batch_id, limit=limit, offset=offset,
    )
    return {"posts": [post_to_dict(item) for item in items]}


@router.patch("")
def update_post_batch(
    payload: ScheduledPostBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Reschedule or retarget several posts at once, by id or by batch."""
    tenant_id = resolve_tenant_id(current_user, payload.user_id)
    result = ScheduledPostStore(db).update_many(
        tenant_id, payload.updates.model_dump(exclude_unset=True), ids=payload.post_ids, batch_id=payload.batch_id,
    )
    return {
        "success": True,
        "posts": [post_to_dict(item) for item in result.items],
        "skipped": result.skipped,
        "not_found": result.not_found,
    }


@router.delete("")
def cancel_post_batch(
    batch_id: str = Query(...),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    tenant_id = resolve_tenant_id(current_user, user_id)
    result = ScheduledPostStore(db).cancel_batch(tenant_id, batch_id)
    return {"success": True, "deleted": result.ids, "skipped": result.skipped}


@router.get("/summary")
def posts_summary(
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    return ScheduledPostStore(db).count_by_status(current_user.id, location_id=location_id)


@router.get("/{item_id}")
def get_post(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    return post_to_dict(ScheduledPostStore(db).get(item_id, current_user.id))


@router.patch("/{item_id}")
def update_post(
    item_id: int,
    update: ScheduledPostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    item = ScheduledPostStore(db).update(item_id, current_user.id, update.model_dump(exclude_unset=True))
    return post_to_dict(item)


@router.delete("/{item_id}", status_code=204)
def delete_post(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    ScheduledPostStore(db).delete(item_id, current_user.id)
    return Response(status_code=204)


@router.post("/{item_id}/resubmit", status_code=201)
def resubmit_post(
    item_id: int,
    payload: Optional[ResubmitRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    publish_time = payload.scheduled_publish_time if payload else None
    item = ScheduledPostStore(db).resubmit(item_id, current_user.id, publish_time)
    return post_to_dict(item)
