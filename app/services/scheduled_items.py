"""
Tenant-scoped store for scheduled Q&A and scheduled posts.

Every query filters on ``user_id``; a tenant id is a required argument of
every public method.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import InvalidStateError, NotFoundError, ValidationError
from ..logging_config import db_logger
from ..models.scheduled_post import ScheduledPost
from ..models.scheduled_qna import ScheduledQnA
from ..models.settings import UserSettings
from .lifecycle import STATUS_VALUES, ItemStatus, StatusLifecycle, state_error_message
from .timeutil import parse_publish_time, utcnow

TOPIC_TYPES = ("STANDARD", "EVENT", "OFFER", "ALERT")
ACTION_TYPES = ("LEARN_MORE", "BOOK", "ORDER", "SHOP", "SIGN_UP", "CALL")


def _item_error(index: Optional[int], field: str, message: str) -> Dict[str, Any]:
    error = {"field": field, "message": message}
    if index is not None:
        error["index"] = index
        error["position"] = index + 1
    return error


def _raise_for(errors: List[Dict[str, Any]]) -> None:
    if not errors:
        return
    first = errors[0]
    prefix = f"Item {first['position']}: " if "position" in first else ""
    message = prefix + first["message"]
    if len(errors) > 1:
        message += f" ({len(errors) - 1} more error{'s' if len(errors) > 2 else ''})"
    raise ValidationError(message, errors)


def _is_http_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


@dataclass
class BulkResult:
    """Outcome of a batch-wide edit or cancel."""
    ids: List[int]
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    not_found: List[int] = field(default_factory=list)
    items: List[Any] = field(default_factory=list, repr=False)


class ScheduledItemStore:
    """CRUD for one scheduled-item table. Subclasses supply validation and row building."""

    model = None
    kind = "item"
    content_fields: tuple = ()
    common_fields = ("scheduled_publish_time", "location_id", "account_name")
    bulk_fields = common_fields
    per_item_times = False

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.lifecycle = StatusLifecycle(db, self.model)

    # ------------------------------------------------------------------
    # hooks
    # ------------------------------------------------------------------

    def validate_item(self, item: Mapping[str, Any], index: Optional[int] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def row_values(self, item: Mapping[str, Any]) -> Dict[str, Any]:
        """Content columns for a validated item."""
        raise NotImplementedError

    def content_of(self, row) -> Dict[str, Any]:
        return {field: getattr(row, self._attr(field)) for field in self.content_fields}

    def _attr(self, field: str) -> str:
        return field

    @property
    def patch_fields(self) -> tuple:
        return self.content_fields + self.common_fields

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def _default_location(self, tenant_id: str) -> Dict[str, Optional[str]]:
        prefs = self.db.query(UserSettings).filter(UserSettings.user_id == tenant_id).first()
        if not prefs:
            return {"location_id": None, "account_name": None}
        return {"location_id": prefs.default_location_id, "account_name": prefs.default_account_name}

    def create(
        self,
        tenant_id: str,
        items: Iterable[Mapping[str, Any]],
        scheduled_publish_time: Any,
        batch_id: Optional[str] = None,
        location_id: Optional[str] = None,
        account_name: Optional[str] = None,
    ) -> List[Any]:
        """Validate every item, then insert them all in one transaction.

        Nothing is written if any item is invalid; the raised ValidationError
        lists each offending item by index.
        """
        items = [dict(item) for item in items]
        errors: List[Dict[str, Any]] = []

        publish_time = None
        try:
            publish_time = parse_publish_time(scheduled_publish_time)
        except ValueError as exc:
            errors.append(_item_error(None, "scheduled_publish_time", str(exc)))

        item_times = {}
        for index, item in enumerate(items):
            errors.extend(self.validate_item(item, index))
            if self.per_item_times and item.get("scheduled_publish_time") is not None:
                try:
                    item_times[index] = parse_publish_time(item["scheduled_publish_time"])
                except ValueError as exc:
                    errors.append(_item_error(index, "scheduled_publish_time", str(exc)))

        _raise_for(errors)

        defaults = None
        rows = []
        for index, item in enumerate(items):
            item_location = item.get("location_id") or location_id
            item_account = item.get("account_name") or account_name
            if not item_location:
                if defaults is None:
                    defaults = self._default_location(tenant_id)
                item_location = defaults["location_id"]
                item_account = item_account or defaults["account_name"]

            rows.append(self.model(
                user_id=tenant_id,
                location_id=item_location,
                account_name=item_account,
                scheduled_publish_time=item_times.get(index, publish_time),
                status=ItemStatus.SCHEDULED.value,
                published_at=None,
                batch_id=batch_id,
                **self.row_values(item),
            ))

        try:
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            db_logger.error(
                f"Failed to insert scheduled {self.kind} batch",
                error=exc,
                tenant_id=tenant_id,
                batch_id=batch_id,
                count=len(rows),
            )
            raise

        return rows

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------

    def get(self, item_id: int, tenant_id: str):
        row = (
            self.db.query(self.model)
            .filter(self.model.id == item_id, self.model.user_id == tenant_id)
            .first()
        )
        if not row:
            raise NotFoundError(f"Scheduled {self.kind} {item_id} not found")
        return row

    def list(
        self,
        tenant_id: str,
        location_id: Optional[str] = None,
        status: Optional[str] = None,
        batch_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Any]:
        """Items ordered by publish time, ties broken by id."""
        model = self.model
        query = self.db.query(model).filter(model.user_id == tenant_id)

        if location_id:
            query = query.filter(model.location_id == location_id)
        if status:
            if status not in STATUS_VALUES:
                raise ValidationError(
                    f"Unknown status '{status}'",
                    [_item_error(None, "status", f"must be one of {', '.join(STATUS_VALUES)}")],
                )
            query = query.filter(model.status == status)
        if batch_id:
            query = query.filter(model.batch_id == batch_id)

        query = query.order_by(model.scheduled_publish_time.asc(), model.id.asc())
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def count_by_status(self, tenant_id: str, location_id: Optional[str] = None) -> Dict[str, int]:
        """Counts per status from a single grouped query."""
        model = self.model
        query = (
            self.db.query(model.status, func.count(model.id))
            .filter(model.user_id == tenant_id)
        )
        if location_id:
            query = query.filter(model.location_id == location_id)

        counts = {status: 0 for status in STATUS_VALUES}
        for status, count in query.group_by(model.status).all():
            counts[status] = count
        return counts

    # ------------------------------------------------------------------
    # mutate (only while scheduled)
    # ------------------------------------------------------------------

    def _raise_state_error(self, item_id: int, tenant_id: str) -> None:
        status = self.lifecycle.current_status(item_id, tenant_id)
        if status is None:
            raise NotFoundError(f"Scheduled {self.kind} {item_id} not found")
        raise InvalidStateError(state_error_message(status), item_id=item_id, status=status)

    def update(self, item_id: int, tenant_id: str, patch: Mapping[str, Any]):
        """Apply a partial edit with ``UPDATE ... WHERE status = 'scheduled'``."""
        patch = dict(patch)
        unknown = sorted(set(patch) - set(self.patch_fields))
        if unknown:
            raise ValidationError(
                f"Field(s) not editable: {', '.join(unknown)}",
                [_item_error(None, field, "field is not editable") for field in unknown],
            )

        row = self.get(item_id, tenant_id)
        if row.status != ItemStatus.SCHEDULED.value:
            raise InvalidStateError(state_error_message(row.status), item_id=item_id, status=row.status)

        merged = {**self.content_of(row), **{k: v for k, v in patch.items() if k in self.content_fields}}
        errors = self.validate_item(merged)

        values: Dict[str, Any] = {}
        if "scheduled_publish_time" in patch:
            try:
                values["scheduled_publish_time"] = parse_publish_time(patch["scheduled_publish_time"])
            except ValueError as exc:
                errors.append(_item_error(None, "scheduled_publish_time", str(exc)))
        _raise_for(errors)

        content = self.row_values(merged)
        for field in self.content_fields:
            if field in patch:
                attr = self._attr(field)
                values[attr] = content[attr]
        for field in ("location_id", "account_name"):
            if field in patch:
                values[field] = patch[field] or None

        if not values:
            return row

        values["updated_at"] = utcnow()
        model = self.model
        rows = (
            self.db.query(model)
            .filter(
                model.id == item_id,
                model.user_id == tenant_id,
                model.status == ItemStatus.SCHEDULED.value,
            )
            .update(values, synchronize_session=False)
        )
        if not rows:
            self.db.rollback()
            self._raise_state_error(item_id, tenant_id)

        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, item_id: int, tenant_id: str) -> None:
        """Delete with ``DELETE ... WHERE status = 'scheduled'``."""
        model = self.model
        rows = (
            self.db.query(model)
            .filter(
                model.id == item_id,
                model.user_id == tenant_id,
                model.status == ItemStatus.SCHEDULED.value,
            )
            .delete(synchronize_session=False)
        )
        if not rows:
            self.db.rollback()
            self._raise_state_error(item_id, tenant_id)
        self.db.commit()

    # ------------------------------------------------------------------
    # batch-wide edits
    # ------------------------------------------------------------------

    def _selection(self, tenant_id: str, ids: Optional[Iterable[int]] = None, batch_id: Optional[str] = None):
        model = self.model
        query = self.db.query(model).filter(model.user_id == tenant_id)
        if ids:
            query = query.filter(model.id.in_(list(ids)))
        if batch_id:
            query = query.filter(model.batch_id == batch_id)
        return query

    def _statuses(self, tenant_id: str, ids=None, batch_id=None) -> Dict[int, str]:
        model = self.model
        query = self.db.query(model.id, model.status).filter(model.user_id == tenant_id)
        if ids:
            query = query.filter(model.id.in_(list(ids)))
        if batch_id:
            query = query.filter(model.batch_id == batch_id)
        return dict(query.all())

    def update_many(
        self,
        tenant_id: str,
        patch: Mapping[str, Any],
        ids: Optional[Iterable[int]] = None,
        batch_id: Optional[str] = None,
    ) -> BulkResult:
        """Apply one patch to the selected items that are still scheduled.

        Items are selected by id, by batch, or both. Only the scheduling
        fields can be changed this way; content is edited item by item.
        Items already claimed, published or failed are reported in
        ``skipped`` and left untouched.
        """
        ids = list(ids or [])
        if not ids and not batch_id:
            raise ValidationError(
                "Select items by id or batch_id",
                [_item_error(None, "ids", "ids or batch_id is required")],
            )

        patch = dict(patch)
        unknown = sorted(set(patch) - set(self.bulk_fields))
        if unknown:
            raise ValidationError(
                f"Field(s) not editable for a batch: {', '.join(unknown)}",
                [_item_error(None, name, "field is not editable for a batch") for name in unknown],
            )
        if not patch:
            raise ValidationError("No changes supplied", [_item_error(None, "updates", "must not be empty")])

        values: Dict[str, Any] = {}
        if "scheduled_publish_time" in patch:
            try:
                values["scheduled_publish_time"] = parse_publish_time(patch["scheduled_publish_time"])
            except ValueError as exc:
                _raise_for([_item_error(None, "scheduled_publish_time", str(exc))])
        for name in ("location_id", "account_name"):
            if name in patch:
                values[name] = patch[name] or None

        targets = self._statuses(tenant_id, ids, batch_id)
        if not targets:
            raise NotFoundError(f"No scheduled {self.kind} matched the selection")

        values["updated_at"] = utcnow()
        scheduled = ItemStatus.SCHEDULED.value
        (
            self._selection(tenant_id, ids, batch_id)
            .filter(self.model.status == scheduled)
            .update(values, synchronize_session=False)
        )
        # rows still scheduled after the update are exactly the ones it changed
        after = self._statuses(tenant_id, list(targets), None)
        self.db.commit()

        updated = sorted(item_id for item_id, status in after.items() if status == scheduled)
        result = BulkResult(
            ids=updated,
            skipped=[{"id": item_id, "status": after[item_id]} for item_id in sorted(after) if after[item_id] != scheduled],
            not_found=[item_id for item_id in ids if item_id not in targets],
        )
        if updated:
            result.items = (
                self._selection(tenant_id, updated)
                .order_by(self.model.scheduled_publish_time.asc(), self.model.id.asc())
                .all()
            )

        db_logger.info(
            f"Updated scheduled {self.kind} items",
            tenant_id=tenant_id,
            batch_id=batch_id,
            updated=len(updated),
            skipped=len(result.skipped),
            fields=sorted(patch),
        )
        return result

    def cancel_batch(self, tenant_id: str, batch_id: str) -> BulkResult:
        """Delete the batch's items that are still scheduled; the rest are reported as skipped."""
        if not batch_id:
            raise ValidationError("batch_id is required", [_item_error(None, "batch_id", "is required")])

        targets = self._statuses(tenant_id, batch_id=batch_id)
        if not targets:
            raise NotFoundError(f"Batch {batch_id} not found")

        (
            self._selection(tenant_id, batch_id=batch_id)
            .filter(self.model.status == ItemStatus.SCHEDULED.value)
            .delete(synchronize_session=False)
        )
        remaining = self._statuses(tenant_id, batch_id=batch_id)
        self.db.commit()

        result = BulkResult(
            ids=sorted(item_id for item_id in targets if item_id not in remaining),
            skipped=[{"id": item_id, "status": status} for item_id, status in sorted(remaining.items())],
        )
        db_logger.info(
            f"Cancelled scheduled {self.kind} batch",
            tenant_id=tenant_id,
            batch_id=batch_id,
            deleted=len(result.ids),
            skipped=len(result.skipped),
        )
        return result

    def resubmit(self, item_id: int, tenant_id: str, scheduled_publish_time: Any = None):
        """Copy a failed item into a new scheduled row; the failed row is kept."""
        row = self.get(item_id, tenant_id)
        if row.status != ItemStatus.FAILED.value:
            raise InvalidStateError(
                "Only items that failed to publish can be resubmitted",
                item_id=item_id,
                status=row.status,
            )

        publish_time = row.scheduled_publish_time
        if scheduled_publish_time is not None:
            try:
                publish_time = parse_publish_time(scheduled_publish_time)
            except ValueError as exc:
                _raise_for([_item_error(None, "scheduled_publish_time", str(exc))])

        copy = self.model(
            user_id=tenant_id,
            location_id=row.location_id,
            account_name=row.account_name,
            scheduled_publish_time=publish_time,
            status=ItemStatus.SCHEDULED.value,
            published_at=None,
            batch_id=str(uuid.uuid4()),
            **self.row_values(self.content_of(row)),
        )
        self.db.add(copy)
        self.db.commit()
        self.db.refresh(copy)
        return copy


class ScheduledQnAStore(ScheduledItemStore):
    model = ScheduledQnA
    kind = "Q&A"
    content_fields = ("question", "answer")

    def validate_item(self, item, index=None):
        errors = []
        question = item.get("question")
        if not isinstance(question, str) or not question.strip():
            errors.append(_item_error(index, "question", "question is required"))
        elif len(question.strip()) < self.settings.min_question_length:
            errors.append(_item_error(
                index, "question",
                f"question must be at least {self.settings.min_question_length} characters",
            ))

        answer = item.get("answer")
        if answer is not None and not isinstance(answer, str):
            errors.append(_item_error(index, "answer", "answer must be text"))
        elif answer and answer.strip() and len(answer.strip()) < self.settings.min_answer_length:
            errors.append(_item_error(
                index, "answer",
                f"answer must be at least {self.settings.min_answer_length} characters",
            ))
        return errors

    def row_values(self, item):
        answer = (item.get("answer") or "").strip()
        return {
            "question": item["question"].strip(),
            "answer": answer or None,
        }


class ScheduledPostStore(ScheduledItemStore):
    model = ScheduledPost
    kind = "post"
    per_item_times = True
    content_fields = ("summary", "topic_type", "action_type", "action_url", "media_url", "language_code", "metadata")

    def _attr(self, field):
        return "post_metadata" if field == "metadata" else field

    def validate_item(self, item, index=None):
        errors = []
        summary = item.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            errors.append(_item_error(index, "summary", "summary is required"))
        elif len(summary.strip()) > self.settings.max_post_summary_length:
            errors.append(_item_error(
                index, "summary",
                f"summary must be at most {self.settings.max_post_summary_length} characters",
            ))

        topic_type = (item.get("topic_type") or "STANDARD").upper()
        if topic_type not in TOPIC_TYPES:
            errors.append(_item_error(index, "topic_type", f"topic_type must be one of {', '.join(TOPIC_TYPES)}"))

        action_type = (item.get("action_type") or "LEARN_MORE").upper()
        if action_type not in ACTION_TYPES:
            errors.append(_item_error(index, "action_type", f"action_type must be one of {', '.join(ACTION_TYPES)}"))

        for field in ("action_url", "media_url"):
            value = item.get(field)
            if value and not (isinstance(value, str) and _is_http_url(value.strip())):
                errors.append(_item_error(index, field, f"{field} must be an http(s) URL"))

        metadata = item.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            errors.append(_item_error(index, "metadata", "metadata must be an object"))
        elif topic_type in ("EVENT", "OFFER") and not (metadata or {}).get("title"):
            errors.append(_item_error(index, "metadata", f"{topic_type} posts require metadata.title"))
        return errors

    def row_values(self, item):
        return {
            "summary": item["summary"].strip(),
            "topic_type": (item.get("topic_type") or "STANDARD").upper(),
            "action_type": (item.get("action_type") or "LEARN_MORE").upper(),
            "action_url": (item.get("action_url") or "").strip() or None,
            "media_url": (item.get("media_url") or "").strip() or None,
            "language_code": item.get("language_code") or "en",
            "post_metadata": item.get("metadata"),
        }
