"""
Batch submission: persist N generated or edited entries as one correlated batch.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..exceptions import AuthorizationError, ValidationError
from ..logging_config import api_logger
from ..models.activity import Activity
from ..models.user import User
from .best_effort import run_best_effort
from .scheduled_items import ScheduledItemStore, ScheduledPostStore, ScheduledQnAStore


@dataclass
class BatchResult:
    batch_id: str
    ids: List[int]
    items: List[Any] = field(default_factory=list, repr=False)


class BatchSubmissionService:
    """Validates a whole submission, stores it atomically, then records activity."""

    def __init__(self, db: Session):
        self.db = db

    def _require_tenant(self, tenant_id: Optional[str]) -> None:
        if not tenant_id or not self.db.query(User.id).filter(User.id == tenant_id).first():
            raise AuthorizationError("Tenant could not be resolved")

    def _submit(
        self,
        store: ScheduledItemStore,
        activity_type: str,
        tenant_id: str,
        entries: Sequence[Mapping[str, Any]],
        scheduled_publish_time: Any,
        location_id: Optional[str] = None,
        account_name: Optional[str] = None,
    ) -> BatchResult:
        self._require_tenant(tenant_id)
        if not entries:
            raise ValidationError(
                f"At least one {store.kind} entry is required",
                [{"field": "items", "message": "must not be empty"}],
            )

        batch_id = str(uuid.uuid4())
        rows = store.create(
            tenant_id,
            entries,
            scheduled_publish_time,
            batch_id=batch_id,
            location_id=location_id,
            account_name=account_name,
        )
        result = BatchResult(batch_id=batch_id, ids=[row.id for row in rows], items=rows)

        api_logger.info(
            f"Scheduled {store.kind} batch",
            tenant_id=tenant_id,
            batch_id=batch_id,
            count=len(rows),
            location_id=location_id,
        )

        run_best_effort(
            [("record_activity", lambda: self._record_activity(activity_type, store.kind, tenant_id, result, location_id))],
            tenant_id=tenant_id,
            batch_id=batch_id,
        )
        return result

    def _record_activity(self, activity_type: str, kind: str, tenant_id: str, result: BatchResult, location_id: Optional[str]) -> None:
        try:
            self.db.add(Activity(
                user_id=tenant_id,
                activity_type=activity_type,
                title=f"Scheduled {len(result.ids)} {kind} item{'s' if len(result.ids) != 1 else ''}",
                extra_data={"batch_id": result.batch_id, "ids": result.ids, "location_id": location_id},
            ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def submit_qna(self, tenant_id: str, entries, scheduled_publish_time, location_id=None, account_name=None) -> BatchResult:
        return self._submit(
            ScheduledQnAStore(self.db), "qna_scheduled",
            tenant_id, entries, scheduled_publish_time, location_id, account_name,
        )

    def submit_posts(self, tenant_id: str, entries, scheduled_publish_time, location_id=None, account_name=None) -> BatchResult:
        return self._submit(
            ScheduledPostStore(self.db), "posts_scheduled",
            tenant_id, entries, scheduled_publish_time, location_id, account_name,
        )
