"""
Publishing Worker

Publishes due scheduled Q&A and posts to Google Business Profile:
- Selects items whose publish time has passed and that have a location
- Claims each item before any external call so it is published at most once
- Records external ids on success, the upstream message on failure

Run once from cron, or continuously:

    python -m app.worker.publishing --interval 60
"""

import argparse
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import SessionLocal
from ..exceptions import ExternalServiceError
from ..logging_config import StructuredLogger, configure_logging, worker_logger
from ..models.scheduled_post import ScheduledPost
from ..models.scheduled_qna import ScheduledQnA
from ..services.google_business import GoogleBusinessClient, build_post_payload
from ..services.google_oauth import GoogleTokenProvider
from ..services.lifecycle import ItemStatus, StatusLifecycle
from ..services.timeutil import utcnow


class PublishOutcome(Enum):
    """Result of one publish attempt"""
    PUBLISHED = "published"
    FAILED = "failed"
    SKIPPED = "skipped"     # claimed elsewhere, already published or deleted


class PublishingWorker:
    """
    Polls for due items and hands them to the publisher adapter.

    ``client_factory(db, tenant_id)`` returns an object with ``create_question``,
    ``upsert_answer`` and ``create_post``; by default a GoogleBusinessClient
    authorised with the tenant's stored OAuth token.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client_factory: Optional[Callable[[Session, str], object]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.client_factory = client_factory or self._google_client
        self.running = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _google_client(self, db: Session, tenant_id: str) -> GoogleBusinessClient:
        token = GoogleTokenProvider(db, self.settings).get_valid_access_token(tenant_id)
        return GoogleBusinessClient(token, self.settings)

    # ------------------------------------------------------------------
    # selection
    # ------------------------------------------------------------------

    def due_items(self, db: Session, model, now: Optional[datetime] = None) -> List:
        """Due rows with a location, plus rows whose publishing lease has expired"""
        now = now or utcnow()
        stale_before = now - timedelta(seconds=self.settings.publish_lease_seconds)
        return (
            db.query(model)
            .filter(
                or_(
                    model.status == ItemStatus.SCHEDULED.value,
                    and_(model.status == ItemStatus.PUBLISHING.value, model.claimed_at < stale_before),
                ),
                model.scheduled_publish_time <= now,
                model.location_id.isnot(None),
            )
            .order_by(model.scheduled_publish_time.asc(), model.id.asc())
            .limit(self.settings.publish_batch_size)
            .all()
        )

    # ------------------------------------------------------------------
    # publishing
    # ------------------------------------------------------------------

    def _claim(self, lifecycle: StatusLifecycle, item, log: StructuredLogger, now: Optional[datetime]) -> bool:
        claimed = lifecycle.claim(item, now=now, lease_seconds=self.settings.publish_lease_seconds)
        if not claimed:
            log.info("Item no longer claimable, skipping")
        return claimed

    def _fail(self, lifecycle: StatusLifecycle, item_id: int, tenant_id: str, exc: Exception, log: StructuredLogger, **external_ids) -> PublishOutcome:
        log.warning(
            "Publishing failed",
            error_type=type(exc).__name__,
            error_message=str(exc),
            retryable=getattr(exc, "retryable", False),
        )
        lifecycle.mark_failed(item_id, tenant_id, str(exc), **external_ids)
        return PublishOutcome.FAILED

    def publish_qna(self, db: Session, item: ScheduledQnA, now: Optional[datetime] = None) -> PublishOutcome:
        """Create the question, then its answer when one was scheduled."""
        lifecycle = StatusLifecycle(db, ScheduledQnA)
        item_id, tenant_id = item.id, item.user_id
        log = worker_logger.bind(item_id=item_id, tenant_id=tenant_id, table=lifecycle.model.__tablename__)
        if not self._claim(lifecycle, item, log, now):
            return PublishOutcome.SKIPPED

        external_ids: Dict[str, str] = {}
        try:
            client = self.client_factory(db, tenant_id)
            question = client.create_question(item.location_id, item.question)
            external_ids["external_question_id"] = question["external_question_id"]
            if item.answer:
                answer = client.upsert_answer(question["external_question_id"], item.answer)
                external_ids["external_answer_id"] = answer["external_answer_id"]
        except ExternalServiceError as exc:
            return self._fail(lifecycle, item_id, tenant_id, exc, log, **external_ids)

        if not lifecycle.mark_published(item_id, tenant_id, **external_ids):
            return PublishOutcome.SKIPPED
        log.info("Published Q&A", **external_ids)
        return PublishOutcome.PUBLISHED

    def publish_post(self, db: Session, item: ScheduledPost, now: Optional[datetime] = None) -> PublishOutcome:
        lifecycle = StatusLifecycle(db, ScheduledPost)
        item_id, tenant_id = item.id, item.user_id
        log = worker_logger.bind(item_id=item_id, tenant_id=tenant_id, table=lifecycle.model.__tablename__)
        if not self._claim(lifecycle, item, log, now):
            return PublishOutcome.SKIPPED

        try:
            client = self.client_factory(db, tenant_id)
            result = client.create_post(item.location_id, build_post_payload(item), account_name=item.account_name)
        except ExternalServiceError as exc:
            return self._fail(lifecycle, item_id, tenant_id, exc, log)

        if not lifecycle.mark_published(item_id, tenant_id, external_post_id=result["external_post_id"]):
            return PublishOutcome.SKIPPED
        log.info("Published post", external_post_id=result["external_post_id"])
        return PublishOutcome.PUBLISHED

    def _publish_one(self, db: Session, model, publish, item_id: int, tenant_id: str, now: datetime) -> PublishOutcome:
        try:
            # a row deleted since selection reads as None
            item = db.get(model, item_id)
            if item is None:
                return PublishOutcome.SKIPPED
            return publish(db, item, now)
        except Exception as e:
            db.rollback()
            worker_logger.error(
                "Unexpected error while publishing",
                error=e,
                item_id=item_id,
                tenant_id=tenant_id,
                table=model.__tablename__,
            )
            try:
                StatusLifecycle(db, model).mark_failed(item_id, tenant_id, f"Unexpected error: {e}")
            except Exception as mark_error:
                db.rollback()
                worker_logger.error("Could not mark item failed", error=mark_error, item_id=item_id)
            return PublishOutcome.FAILED

    def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Publish everything due at ``now``; returns counts per outcome."""
        now = now or utcnow()
        counts = {outcome.value: 0 for outcome in PublishOutcome}

        for model, publish in ((ScheduledQnA, self.publish_qna), (ScheduledPost, self.publish_post)):
            db = self.session_factory()
            try:
                keys = [(item.id, item.user_id) for item in self.due_items(db, model, now)]
                for item_id, tenant_id in keys:
                    outcome = self._publish_one(db, model, publish, item_id, tenant_id, now)
                    counts[outcome.value] += 1
            finally:
                db.close()

        if any(counts.values()):
            worker_logger.info("Publishing run complete", **counts)
        return counts

    # ------------------------------------------------------------------
    # loop
    # ------------------------------------------------------------------

    def run_forever(self, interval: Optional[int] = None):
        """Poll until ``stop()`` is called"""
        interval = interval or self.settings.publish_poll_interval_seconds
        self.running = True
        self._stop.clear()
        worker_logger.info("Publishing worker started", interval_seconds=interval)

        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:
                worker_logger.error("Publishing run failed", error=e)
            self._stop.wait(interval)

        self.running = False
        worker_logger.info("Publishing worker stopped")

    def start_background(self, interval: Optional[int] = None) -> bool:
        """Start polling in a daemon thread (non-blocking for FastAPI)"""
        if self.running:
            return False

        self.running = True
        self._thread = threading.Thread(
            target=self.run_forever, args=(interval,), daemon=True, name="publishing-worker"
        )
        self._thread.start()
        return True

    def stop(self) -> bool:
        if not self.running:
            return False
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        return True


# Global worker instance (initialized lazily)
_publishing_worker: Optional[PublishingWorker] = None


def get_publishing_worker() -> PublishingWorker:
    """Get or create the global publishing worker"""
    global _publishing_worker
    if _publishing_worker is None:
        _publishing_worker = PublishingWorker()
    return _publishing_worker


# ============================================================
# MAIN
# ============================================================

def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Publish due scheduled Q&A and posts")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument("--interval", type=int, default=None, help="Seconds between passes")
    parser.add_argument("--log-level", default=None, help="Override REVIEWDESK_LOG_LEVEL")
    args = parser.parse_args(argv)

    if args.log_level:
        configure_logging(level=args.log_level)

    worker = PublishingWorker()
    if args.once:
        counts = worker.run_once()
        print(", ".join(f"{k}: {v}" for k, v in counts.items()))
        return counts

    try:
        worker.run_forever(args.interval)
    except KeyboardInterrupt:
        worker.stop()


if __name__ == '__main__':
    main()
