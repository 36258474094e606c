"""
Scheduled Q&A routes: batch scheduling, listing and edits before publication.
"""
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session
from typing import Optional

from ..auth import get_current_tenant, resolve_tenant_id
from ..config import get_settings
from ..database import get_db
from ..limiter import limiter
from ..models.scheduled_qna import ScheduledQnA
from ..models.user import User
from ..schemas.scheduled_qna import ResubmitRequest, ScheduledQnABulkUpdate, ScheduledQnACreate, ScheduledQnAUpdate
from ..services.batch_submission import BatchSubmissionService
from ..services.scheduled_items import ScheduledQnAStore
from ..services.timeutil import isoformat

router = APIRouter(prefix="/api/scheduled-qna", tags=["scheduled-qna"])
settings = get_settings()


def qna_to_dict(item: ScheduledQnA) -> dict:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "location_id": item.location_id,
        "account_name": item.account_name,
        "question": item.question,
        "answer": item.answer,
        "scheduled_publish_time": isoformat(item.scheduled_publish_time),
        "status": item.status,
        "published_at": isoformat(item.published_at),
        "batch_id": item.batch_id,
        "external_question_id": item.external_question_id,
        "external_answer_id": item.external_answer_id,
        "last_error": item.last_error,
        "created_at": isoformat(item.created_at),
        "updated_at": isoformat(item.updated_at),
    }


@router.post("", status_code=201)
@limiter.limit(settings.schedule_rate_limit)
def schedule_qna(
    request: Request,
    payload: ScheduledQnACreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Schedule a batch of Q&A entries for one publish time."""
    tenant_id = resolve_tenant_id(current_user, payload.user_id)
    result = BatchSubmissionService(db).submit_qna(
        tenant_id,
        [entry.model_dump() for entry in payload.qna],
        payload.scheduled_publish_time,
        location_id=payload.location_id,
        account_name=payload.account_name,
    )
    return {"success": True, "batchId": result.batch_id, "ids": result.ids}


@router.get("")
def list_qna(
    user_id: Optional[str] = None,
    location_id: Optional[str] = None,
    status: Optional[str] = None,
    batch_id: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """List the tenant's scheduled Q&A ordered by publish time."""
    tenant_id = resolve_tenant_id(current_user, user_id)
    items = ScheduledQnAStore(db).list(
        tenant_id, location_id=location_id, status=status, batch_id=batch_id, limit=limit, offset=offset,
    )
    return {"qna": [qna_to_dict(item) for item in items]}


@router.patch("")
def update_qna_batch(
    payload: ScheduledQnABulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Reschedule or retarget several Q&A at once, by id or by batch."""
    tenant_id = resolve_tenant_id(current_user, payload.user_id)
    result = ScheduledQnAStore(db).update_many(
        tenant_id, payload.updates.model_dump(exclude_unset=True), ids=payload.qna_ids, batch_id=payload.batch_id,
    )
    return {
        "success": True,
        "qna": [qna_to_dict(item) for item in result.items],
        "skipped": result.skipped,
        "not_found": result.not_found,
    }


@router.delete("")
def cancel_qna_batch(
    batch_id: str = Query(...),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Delete every still-scheduled Q&A of a batch."""
    tenant_id = resolve_tenant_id(current_user, user_id)
    result = ScheduledQnAStore(db).cancel_batch(tenant_id, batch_id)
    return {"success": True, "deleted": result.ids, "skipped": result.skipped}


@router.get("/summary")
def qna_summary(
    location_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    return ScheduledQnAStore(db).count_by_status(current_user.id, location_id=location_id)


@router.get("/{item_id}")
def get_qna(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    return qna_to_dict(ScheduledQnAStore(db).get(item_id, current_user.id))


@router.patch("/{item_id}")
def update_qna(
    item_id: int,
    update: ScheduledQnAUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Edit a Q&A that has not been published yet."""
    item = ScheduledQnAStore(db).update(item_id, current_user.id, update.model_dump(exclude_unset=True))
    return qna_to_dict(item)


@router.delete("/{item_id}", status_code=204)
def delete_qna(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    ScheduledQnAStore(db).delete(item_id, current_user.id)
    return Response(status_code=204)


@router.post("/{item_id}/resubmit", status_code=201)
def resubmit_qna(
    item_id: int,
    payload: Optional[ResubmitRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_tenant),
):
    """Schedule a copy of a failed Q&A; the failed row is kept for reference."""
    publish_time = payload.scheduled_publish_time if payload else None
    item = ScheduledQnAStore(db).resubmit(item_id, current_user.id, publish_time)
    return qna_to_dict(item)
