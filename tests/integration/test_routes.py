"""Integration tests for the verification, notification and task routes."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from infrastructure.verification.memory_store import InMemoryVerificationStore
from repositories.notification_store import NotificationStore
from routes.notification_routes import router as notification_router
from routes.task_routes import router as task_router
from routes.verification_routes import router as verification_router
from services.task_notification_scheduler import TaskNotificationScheduler
from services.verification_service import VerificationCodeManager
from tests.fakes import FakeCollection, FakeEmailProvider, MutableClock

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
USER = {"X-User-Id": "u1"}


def _build_test_app(expose_codes: bool = True, deliver: bool = True):
    clock = MutableClock(T0)
    collection = FakeCollection()
    email = FakeEmailProvider(deliver=deliver)
    store = NotificationStore(collection, now=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.verification_manager = VerificationCodeManager(
            InMemoryVerificationStore(), email, expose_codes=expose_codes, now=clock
        )
        app.state.notification_store = store
        app.state.task_scheduler = TaskNotificationScheduler(store, now=clock)
        app.state.email_provider = email
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(verification_router)
    app.include_router(notification_router)
    app.include_router(task_router)
    return app, collection, email, clock


def _seed(collection, user_id="u1", read=False, minutes=0):
    _id = ObjectId()
    collection.docs.append(
        {
            "_id": _id,
            "user_id": user_id,
            "type": "watering",
            "title": "Reminder: Water",
            "message": "Due soon",
            "priority": "high",
            "timestamp": T0.replace(minute=minutes),
            "read": read,
        }
    )
    return str(_id)


TASK_BODY = {
    "task": {
        "id": "task-1",
        "title": "Water tomatoes",
        "type": "watering",
        "dueDate": "2025-01-10",
        "enableNotification": True,
        "notificationTiming": "3",
        "gardenName": "Backyard",
    },
    "user": {"id": "u1", "emailNotifications": True},
}


# ── /verification ─────────────────────────────────────────────────────────────


class TestVerificationRoutes:
    def test_send_then_verify(self):
        app, _, email, _ = _build_test_app()
        with TestClient(app) as client:
            sent = client.post("/verification/send", json={"email": "A@x.com"})
            assert sent.status_code == 200
            body = sent.json()
            assert body["delivered"] is True
            assert body["expires_in"] == 600
            code = body["demo_code"]
            assert code == email.sent[0].payload

            ok = client.post(
                "/verification/verify", json={"email": "a@x.com", "code": code}
            )
        assert ok.status_code == 200
        assert ok.json() == {
            "success": True,
            "message": "Email verified successfully!",
            "email_verified": True,
        }

    def test_demo_code_omitted_without_diagnostics(self):
        app, _, _, _ = _build_test_app(expose_codes=False)
        with TestClient(app) as client:
            resp = client.post("/verification/send", json={"email": "a@x.com"})
        assert "demo_code" not in resp.json()

    def test_failed_delivery_still_succeeds(self):
        app, _, _, _ = _build_test_app(deliver=False)
        with TestClient(app) as client:
            resp = client.post("/verification/send", json={"email": "a@x.com"})
        assert resp.status_code == 200
        assert resp.json()["delivered"] is False

    def test_invalid_email_is_400(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.post("/verification/send", json={"email": "nope"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_wrong_code_reports_remaining(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            code = client.post(
                "/verification/send", json={"email": "a@x.com"}
            ).json()["demo_code"]
            wrong = "100000" if code != "100000" else "100001"
            resp = client.post(
                "/verification/verify", json={"email": "a@x.com", "code": wrong}
            )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_code"
        assert resp.json()["details"] == {"remaining_attempts": 2}

    def test_lockout_and_missing_are_indistinguishable(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            code = client.post(
                "/verification/send", json={"email": "a@x.com"}
            ).json()["demo_code"]
            wrong = "100000" if code != "100000" else "100001"
            for _ in range(3):
                client.post(
                    "/verification/verify", json={"email": "a@x.com", "code": wrong}
                )
            locked = client.post(
                "/verification/verify", json={"email": "a@x.com", "code": code}
            )
            missing = client.post(
                "/verification/verify", json={"email": "b@x.com", "code": code}
            )
        assert locked.status_code == missing.status_code == 404
        assert locked.json() == missing.json()
        assert locked.json()["code"] == "not_found"

    def test_expired_is_410(self):
        app, _, _, clock = _build_test_app()
        with TestClient(app) as client:
            code = client.post(
                "/verification/send", json={"email": "a@x.com"}
            ).json()["demo_code"]
            clock.advance(minutes=11)
            resp = client.post(
                "/verification/verify", json={"email": "a@x.com", "code": code}
            )
        assert resp.status_code == 410


# ── /notifications ────────────────────────────────────────────────────────────


class TestNotificationRoutes:
    def test_requires_user_header(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.get("/notifications")
        assert resp.status_code == 400

    def test_list_newest_first_and_scoped(self):
        app, collection, _, _ = _build_test_app()
        older = _seed(collection, minutes=1)
        newer = _seed(collection, minutes=5)
        _seed(collection, user_id="u2")
        with TestClient(app) as client:
            resp = client.get("/notifications", headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert [n["id"] for n in body["notifications"]] == [newer, older]

    @pytest.mark.parametrize("limit", [0, 201])
    def test_limit_bounds(self, limit):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.get(f"/notifications?limit={limit}", headers=USER)
        assert resp.status_code == 422

    def test_unread_count_and_read_all(self):
        app, collection, _, _ = _build_test_app()
        for i in range(3):
            _seed(collection, minutes=i)
        _seed(collection, read=True, minutes=10)
        with TestClient(app) as client:
            assert client.get("/notifications/unread-count", headers=USER).json() == {
                "unread": 3
            }
            resp = client.post("/notifications/read-all", headers=USER)
            assert resp.json() == {
                "success": True,
                "requested": 3,
                "updated": 3,
                "failed_ids": [],
            }
            assert client.get("/notifications/unread-count", headers=USER).json() == {
                "unread": 0
            }

    def test_mark_read(self):
        app, collection, _, _ = _build_test_app()
        nid = _seed(collection)
        with TestClient(app) as client:
            resp = client.post(f"/notifications/{nid}/read", headers=USER)
        assert resp.status_code == 200
        assert collection.docs[0]["read"] is True

    def test_other_users_notification_is_not_found(self):
        app, collection, _, _ = _build_test_app()
        nid = _seed(collection, user_id="u2")
        with TestClient(app) as client:
            read = client.post(f"/notifications/{nid}/read", headers=USER)
            deleted = client.delete(f"/notifications/{nid}", headers=USER)
        assert read.status_code == 404
        assert deleted.status_code == 404
        assert len(collection.docs) == 1

    def test_delete(self):
        app, collection, _, _ = _build_test_app()
        nid = _seed(collection)
        with TestClient(app) as client:
            first = client.delete(f"/notifications/{nid}", headers=USER)
            second = client.delete(f"/notifications/{nid}", headers=USER)
        assert first.status_code == 204
        assert second.status_code == 404

    def test_malformed_id_is_not_found(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.post("/notifications/not-an-id/read", headers=USER)
        assert resp.status_code == 404

    def test_store_outage_is_503(self):
        from pymongo.errors import ServerSelectionTimeoutError

        app, collection, _, _ = _build_test_app()
        collection.fail_on["find"] = ServerSelectionTimeoutError("down")
        with TestClient(app) as client:
            resp = client.get("/notifications", headers=USER)
        assert resp.status_code == 503
        assert resp.json()["code"] == "store_unavailable"

    def test_test_email(self):
        app, _, email, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.post(
                "/notifications/test-email", json={"email": "a@x.com"}, headers=USER
            )
        assert resp.json()["success"] is True
        assert email.sent[0].kind == "test"


# ── /tasks ────────────────────────────────────────────────────────────────────


class TestTaskRoutes:
    def test_create_update_delete_cycle(self):
        app, collection, _, _ = _build_test_app()
        with TestClient(app) as client:
            created = client.post("/tasks/notifications", json=TASK_BODY)
            assert created.status_code == 200
            assert created.json()["scheduled"] is True
            first_id = created.json()["notification_id"]

            updated = client.put("/tasks/task-1/notifications", json=TASK_BODY)
            assert updated.json()["scheduled"] is True
            assert updated.json()["notification_id"] != first_id
            assert len(collection.docs) == 1

            deleted = client.delete("/tasks/task-1/notifications")
            assert deleted.status_code == 200
            assert collection.docs == []

    def test_disabled_task_not_scheduled(self):
        app, collection, _, _ = _build_test_app()
        body = {
            "task": {**TASK_BODY["task"], "enableNotification": False},
            "user": TASK_BODY["user"],
        }
        with TestClient(app) as client:
            resp = client.post("/tasks/notifications", json=body)
        assert resp.json()["scheduled"] is False
        assert collection.count("insert_one") == 0

    def test_task_id_mismatch_is_400(self):
        app, _, _, _ = _build_test_app()
        with TestClient(app) as client:
            resp = client.put("/tasks/other/notifications", json=TASK_BODY)
        assert resp.status_code == 400

    def test_store_failure_answers_not_scheduled(self):
        from pymongo.errors import ServerSelectionTimeoutError

        app, collection, _, _ = _build_test_app()
        collection.fail_on["insert_one"] = ServerSelectionTimeoutError("down")
        with TestClient(app) as client:
            resp = client.post("/tasks/notifications", json=TASK_BODY)
        assert resp.status_code == 200
        assert resp.json()["scheduled"] is False
