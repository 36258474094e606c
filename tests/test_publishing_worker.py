"""
Tests for the publishing worker.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.exceptions import ExternalServiceError
from app.models.scheduled_post import ScheduledPost
from app.models.scheduled_qna import ScheduledQnA
from app.services.lifecycle import StatusLifecycle
from app.services.scheduled_items import ScheduledPostStore, ScheduledQnAStore
from app.worker.publishing import PublishingWorker, PublishOutcome, main

T = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
QUESTION = {"question": "What are your opening hours?", "answer": "9 to 5 on weekdays."}


@pytest.fixture
def adapter():
    client = MagicMock()
    client.create_question.return_value = {"external_question_id": "locations/1/questions/q1", "response": {}}
    client.upsert_answer.return_value = {"external_answer_id": "locations/1/questions/q1/answers/a1", "response": {}}
    client.create_post.return_value = {"external_post_id": "accounts/1/locations/1/localPosts/p1", "response": {}}
    return client


@pytest.fixture
def worker(session_factory, adapter):
    return PublishingWorker(session_factory=session_factory, client_factory=lambda db, tenant_id: adapter)


def _reload(db, model, item_id):
    db.expire_all()
    return db.get(model, item_id)


class TestDueItems:
    """Selection of publishable rows."""

    def test_only_due_rows_with_location(self, db, test_user, worker):
        store = ScheduledQnAStore(db)
        due = store.create(test_user.id, [QUESTION], T, location_id="loc-1")[0]
        store.create(test_user.id, [QUESTION], T + timedelta(hours=1), location_id="loc-1")
        store.create(test_user.id, [QUESTION], T)

        items = worker.due_items(db, ScheduledQnA, now=T)

        assert [i.id for i in items] == [due.id]


class TestRunOnce:
    """A full publishing pass."""

    def test_publishes_qna_once(self, db, test_user, worker, adapter):
        """Two passes call the adapter once; the second pass finds nothing."""
        item_id = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0].id

        first = worker.run_once(now=T + timedelta(minutes=1))
        second = worker.run_once(now=T + timedelta(minutes=2))

        assert first["published"] == 1
        assert second == {"published": 0, "failed": 0, "skipped": 0}
        adapter.create_question.assert_called_once_with("loc-1", QUESTION["question"])
        adapter.upsert_answer.assert_called_once_with("locations/1/questions/q1", QUESTION["answer"])

        row = _reload(db, ScheduledQnA, item_id)
        assert row.status == "published"
        assert row.published_at is not None
        assert row.external_question_id == "locations/1/questions/q1"
        assert row.external_answer_id == "locations/1/questions/q1/answers/a1"

    def test_question_without_answer(self, db, test_user, worker, adapter):
        ScheduledQnAStore(db).create(test_user.id, [{"question": QUESTION["question"]}], T, location_id="loc-1")

        worker.run_once(now=T)

        adapter.create_question.assert_called_once()
        adapter.upsert_answer.assert_not_called()

    def test_failure_recorded(self, db, test_user, worker, adapter):
        """An adapter error marks the row failed with the upstream message."""
        adapter.create_question.side_effect = ExternalServiceError(
            "Failed to create question: 400 - INVALID_ARGUMENT",
            service="google_business_profile",
            upstream_status=400,
        )
        item_id = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0].id

        counts = worker.run_once(now=T)

        assert counts["failed"] == 1
        row = _reload(db, ScheduledQnA, item_id)
        assert row.status == "failed"
        assert "INVALID_ARGUMENT" in row.last_error
        assert row.published_at is None

    def test_failed_rows_not_retried(self, db, test_user, worker, adapter):
        adapter.create_question.side_effect = ExternalServiceError("boom", service="google_business_profile")
        ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")

        worker.run_once(now=T)
        worker.run_once(now=T + timedelta(hours=1))

        assert adapter.create_question.call_count == 1

    def test_answer_failure_keeps_question_id(self, db, test_user, worker, adapter):
        adapter.upsert_answer.side_effect = ExternalServiceError("answer rejected", service="google_business_profile")
        item_id = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0].id

        worker.run_once(now=T)

        row = _reload(db, ScheduledQnA, item_id)
        assert row.status == "failed"
        assert row.external_question_id == "locations/1/questions/q1"

    def test_unexpected_error_does_not_stop_run(self, db, test_user, worker, adapter):
        adapter.create_question.side_effect = [RuntimeError("bug"), {"external_question_id": "q2", "response": {}}]
        rows = ScheduledQnAStore(db).create(
            test_user.id, [{"question": QUESTION["question"]}, {"question": "Do you have vegan options?"}], T, location_id="loc-1",
        )
        ids = [r.id for r in rows]

        counts = worker.run_once(now=T)

        assert counts == {"published": 1, "failed": 1, "skipped": 0}
        assert _reload(db, ScheduledQnA, ids[0]).last_error.startswith("Unexpected error")
        assert _reload(db, ScheduledQnA, ids[1]).status == "published"

    def test_publishes_posts(self, db, test_user, worker, adapter):
        item_id = ScheduledPostStore(db).create(
            test_user.id,
            [{"summary": "Summer sale this weekend", "action_type": "SHOP", "action_url": "https://shop.example.com"}],
            T,
            location_id="loc-1",
            account_name="accounts/1",
        )[0].id

        worker.run_once(now=T)

        args, kwargs = adapter.create_post.call_args
        assert args[0] == "loc-1"
        assert args[1]["summary"] == "Summer sale this weekend"
        assert args[1]["callToAction"] == {"actionType": "SHOP", "url": "https://shop.example.com"}
        assert kwargs["account_name"] == "accounts/1"
        row = _reload(db, ScheduledPost, item_id)
        assert row.status == "published"
        assert row.external_post_id == "accounts/1/locations/1/localPosts/p1"

    def test_missing_google_connection_fails_item(self, db, test_user, session_factory):
        """Without stored OAuth tokens the default client fails the row."""
        item_id = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0].id
        worker = PublishingWorker(session_factory=session_factory)

        worker.run_once(now=T)

        row = _reload(db, ScheduledQnA, item_id)
        assert row.status == "failed"
        assert "not connected" in row.last_error


class TestClaiming:
    """Concurrent publishers."""

    def test_claimed_item_skipped(self, db, test_user, worker, adapter, session_factory):
        """An item claimed by another worker is not published again."""
        item = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0]
        assert StatusLifecycle(db, ScheduledQnA).claim(item, now=T)

        other = session_factory()
        try:
            outcome = worker.publish_qna(other, other.get(ScheduledQnA, item.id), now=T)
        finally:
            other.close()

        assert outcome == PublishOutcome.SKIPPED
        adapter.create_question.assert_not_called()

    def test_stale_claim_recovered(self, db, test_user, worker, adapter):
        """A row left in publishing past its lease is picked up again."""
        item = ScheduledQnAStore(db).create(test_user.id, [QUESTION], T, location_id="loc-1")[0]
        StatusLifecycle(db, ScheduledQnA).claim(item, now=T)

        assert worker.run_once(now=T + timedelta(seconds=60))["published"] == 0
        counts = worker.run_once(now=T + timedelta(seconds=worker.settings.publish_lease_seconds + 1))

        assert counts["published"] == 1
        adapter.create_question.assert_called_once()


class TestCli:
    def test_once_flag(self, monkeypatch):
        run_once = MagicMock(return_value={"published": 0, "failed": 0, "skipped": 0})
        monkeypatch.setattr(PublishingWorker, "run_once", run_once)

        assert main(["--once"]) == {"published": 0, "failed": 0, "skipped": 0}
        run_once.assert_called_once()

    def test_log_level_flag(self, monkeypatch):
        monkeypatch.setattr(PublishingWorker, "run_once", MagicMock(return_value={"published": 0, "failed": 0, "skipped": 0}))
        configure = MagicMock()
        monkeypatch.setattr("app.worker.publishing.configure_logging", configure)

        main(["--once", "--log-level", "debug"])

        configure.assert_called_once_with(level="debug")
