"""
Tests for scheduled post endpoints.
"""
from app.models.scheduled_post import ScheduledPost

PUBLISH_TIME = "2030-01-01T12:00:00Z"
POSTS = [
    {"summary": "Summer sale this weekend", "topic_type": "STANDARD", "action_type": "SHOP", "action_url": "https://shop.example.com"},
    {
        "summary": "Live music on Friday",
        "topic_type": "EVENT",
        "metadata": {"title": "Jazz night", "schedule": {"start": "2030-01-05T19:00:00Z"}},
        "scheduled_publish_time": "2030-01-02T09:00:00Z",
    },
]


def _schedule(client, headers, posts=POSTS, **extra):
    body = {"posts": posts, "scheduled_publish_time": PUBLISH_TIME, "location_id": "loc-1", "account_name": "accounts/1"}
    body.update(extra)
    return client.post("/api/scheduled-posts", headers=headers, json=body)


class TestSchedulePosts:
    def test_schedule_batch(self, client, auth_headers):
        response = _schedule(client, auth_headers)

        assert response.status_code == 201
        assert len(response.json()["ids"]) == 2

        posts = client.get("/api/scheduled-posts", headers=auth_headers).json()["posts"]
        assert [p["summary"] for p in posts] == ["Summer sale this weekend", "Live music on Friday"]
        assert posts[1]["scheduled_publish_time"] == "2030-01-02T09:00:00+00:00"
        assert posts[1]["metadata"]["title"] == "Jazz night"
        assert posts[0]["account_name"] == "accounts/1"

    def test_event_without_title_rejected(self, client, auth_headers, db):
        posts = POSTS[:1] + [{"summary": "Open day", "topic_type": "EVENT"}]

        response = _schedule(client, auth_headers, posts=posts)

        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["position"] == 2
        assert db.query(ScheduledPost).count() == 0

    def test_unknown_topic_rejected(self, client, auth_headers):
        response = _schedule(client, auth_headers, posts=[{"summary": "Hello", "topic_type": "PROMO"}])

        assert response.status_code == 400

    def test_unauthenticated(self, client, db):
        assert _schedule(client, {}).status_code == 401


class TestEditPosts:
    def test_patch_and_delete(self, client, auth_headers):
        item_id = _schedule(client, auth_headers).json()["ids"][0]

        response = client.patch(f"/api/scheduled-posts/{item_id}", headers=auth_headers, json={"summary": "Sale extended"})
        assert response.status_code == 200
        assert response.json()["summary"] == "Sale extended"

        assert client.delete(f"/api/scheduled-posts/{item_id}", headers=auth_headers).status_code == 204

    def test_published_post_locked(self, client, auth_headers, db):
        item_id = _schedule(client, auth_headers).json()["ids"][0]
        db.query(ScheduledPost).filter(ScheduledPost.id == item_id).update({"status": "published"})
        db.commit()

        assert client.patch(f"/api/scheduled-posts/{item_id}", headers=auth_headers, json={"summary": "Nope"}).status_code == 409
        assert client.delete(f"/api/scheduled-posts/{item_id}", headers=auth_headers).status_code == 409

    def test_other_tenant_cannot_delete(self, client, auth_headers, other_headers):
        item_id = _schedule(client, auth_headers).json()["ids"][0]

        assert client.delete(f"/api/scheduled-posts/{item_id}", headers=other_headers).status_code == 404
        assert client.get(f"/api/scheduled-posts/{item_id}", headers=auth_headers).status_code == 200

    def test_summary(self, client, auth_headers):
        _schedule(client, auth_headers)

        response = client.get("/api/scheduled-posts/summary", headers=auth_headers)

        assert response.json()["scheduled"] == 2


class TestBatchPosts:
    """PATCH/DELETE /api/scheduled-posts"""

    def test_retarget_batch(self, client, auth_headers):
        created = _schedule(client, auth_headers).json()

        response = client.patch(
            "/api/scheduled-posts",
            headers=auth_headers,
            json={"post_ids": created["ids"], "updates": {"location_id": "loc-2", "account_name": "accounts/2"}},
        )

        assert response.status_code == 200
        posts = response.json()["posts"]
        assert len(posts) == 2
        assert {(p["location_id"], p["account_name"]) for p in posts} == {("loc-2", "accounts/2")}
        assert response.json()["not_found"] == []

    def test_cancel_batch(self, client, auth_headers, db):
        created = _schedule(client, auth_headers).json()

        response = client.delete(f"/api/scheduled-posts?batch_id={created['batchId']}", headers=auth_headers)

        assert response.status_code == 200
        assert sorted(response.json()["deleted"]) == sorted(created["ids"])
        db.expire_all()
        assert db.query(ScheduledPost).count() == 0

    def test_cancel_other_tenant_batch(self, client, auth_headers, other_headers, db):
        created = _schedule(client, auth_headers).json()

        response = client.delete(f"/api/scheduled-posts?batch_id={created['batchId']}", headers=other_headers)

        assert response.status_code == 404
        db.expire_all()
        assert db.query(ScheduledPost).count() == 2
