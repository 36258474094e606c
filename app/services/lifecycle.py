"""
Status lifecycle for scheduled Q&A and posts.

    scheduled --claim--> publishing --> published
        |                    |
        +--------------------+------> failed

Every transition is a single conditional UPDATE whose predicate names the
item, its tenant and the statuses it may leave, so a transition racing
against a user edit or another worker changes at most one of them.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..exceptions import InvalidStateError, NotFoundError
from ..logging_config import worker_logger
from .timeutil import utcnow

MAX_ERROR_LENGTH = 2000


class ItemStatus(str, Enum):
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.PUBLISHED, ItemStatus.FAILED)


ALLOWED_TRANSITIONS = {
    ItemStatus.SCHEDULED: {ItemStatus.PUBLISHING, ItemStatus.PUBLISHED, ItemStatus.FAILED},
    ItemStatus.PUBLISHING: {ItemStatus.PUBLISHED, ItemStatus.FAILED},
    ItemStatus.PUBLISHED: set(),
    ItemStatus.FAILED: set(),
}

STATUS_VALUES = [s.value for s in ItemStatus]


def can_transition(current: str, target: str) -> bool:
    return ItemStatus(target) in ALLOWED_TRANSITIONS[ItemStatus(current)]


def sources_of(target: ItemStatus) -> List[ItemStatus]:
    """Statuses an item may leave to reach ``target``."""
    return [status for status, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def state_error_message(status: str) -> str:
    if status == ItemStatus.PUBLISHED:
        return "This item has already been published and cannot be changed"
    if status == ItemStatus.PUBLISHING:
        return "This item is being published and cannot be changed"
    if status == ItemStatus.FAILED:
        return "This item failed to publish and cannot be changed; resubmit it instead"
    return f"This item cannot be changed while {status}"


class StatusLifecycle:
    """Applies status transitions to one scheduled-item model."""

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def current_status(self, item_id: int, tenant_id: str) -> Optional[str]:
        """Read the committed status, bypassing the session identity map."""
        return (
            self.db.query(self.model.status)
            .filter(self.model.id == item_id, self.model.user_id == tenant_id)
            .scalar()
        )

    def _guarded_update(self, item_id: int, tenant_id: str, from_statuses: Iterable[ItemStatus], values: dict) -> int:
        model = self.model
        values = dict(values, updated_at=utcnow())
        return (
            self.db.query(model)
            .filter(
                model.id == item_id,
                model.user_id == tenant_id,
                model.status.in_([s.value for s in from_statuses]),
            )
            .update(values, synchronize_session=False)
        )

    def claim(self, item, now: Optional[datetime] = None, lease_seconds: int = 600) -> bool:
        """Move a due item to ``publishing``; True only for the caller that won it.

        A ``publishing`` item whose lease is older than ``lease_seconds`` is
        considered abandoned by a crashed worker and may be claimed again.
        """
        now = now or utcnow()
        model = self.model
        stale_before = now - timedelta(seconds=lease_seconds)
        rows = (
            self.db.query(model)
            .filter(
                model.id == item.id,
                model.user_id == item.user_id,
                or_(
                    model.status.in_([s.value for s in sources_of(ItemStatus.PUBLISHING)]),
                    and_(model.status == ItemStatus.PUBLISHING.value, model.claimed_at < stale_before),
                ),
            )
            .update(
                {"status": ItemStatus.PUBLISHING.value, "claimed_at": now, "updated_at": now},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if rows:
            self.db.refresh(item)
        return rows == 1

    def mark_published(self, item_id: int, tenant_id: str, now: Optional[datetime] = None, **external_ids) -> bool:
        """Transition to ``published`` and stamp ``published_at``.

        Returns False when the item was already published (idempotent no-op).
        Raises InvalidStateError for failed items, NotFoundError when gone.
        """
        now = now or utcnow()
        values = {
            "status": ItemStatus.PUBLISHED.value,
            "published_at": now,
            "claimed_at": None,
            "last_error": None,
        }
        values.update(external_ids)
        rows = self._guarded_update(item_id, tenant_id, sources_of(ItemStatus.PUBLISHED), values)
        if rows:
            self.db.commit()
            return True

        self.db.rollback()
        status = self.current_status(item_id, tenant_id)
        if status is None:
            raise NotFoundError(f"Scheduled item {item_id} not found")
        if status == ItemStatus.PUBLISHED:
            worker_logger.info("Item already published, skipping", item_id=item_id, table=self.model.__tablename__)
            return False
        raise InvalidStateError(state_error_message(status), item_id=item_id, status=status)

    def mark_failed(self, item_id: int, tenant_id: str, error_message: str, **external_ids) -> bool:
        """Transition to ``failed`` keeping the upstream message. No-op when already terminal."""
        values = {
            "status": ItemStatus.FAILED.value,
            "claimed_at": None,
            "last_error": (error_message or "Unknown error")[:MAX_ERROR_LENGTH],
        }
        values.update(external_ids)
        rows = self._guarded_update(item_id, tenant_id, sources_of(ItemStatus.FAILED), values)
        if rows:
            self.db.commit()
            return True

        self.db.rollback()
        if self.current_status(item_id, tenant_id) is None:
            raise NotFoundError(f"Scheduled item {item_id} not found")
        return False
