import json
import uuid

from sqlalchemy.exc import OperationalError

from filegate import models, notify
from filegate.services import notifications
from .conftest import client, create_user, upload, TestingSessionLocal


def seed(user_id, notification_type="file_shared", title="Hello"):
    db = TestingSessionLocal()
    try:
        return notifications.notify(
            db,
            user_id,
            notification_type,
            title,
            f"{title} message",
            {"source": "test"},
        ).id
    finally:
        db.close()


def test_list_mark_read_and_delete(client):
    user_id, headers = create_user()
    first = seed(user_id, title="First")
    second = seed(user_id, "file_downloaded", title="Second")

    listed = client.get("/api/notifications/", headers=headers).json()
    assert {n["id"] for n in listed} == {str(first), str(second)}
    assert all(n["read"] is False for n in listed)
    assert listed[0]["metadata"] == {"source": "test"}

    only_downloads = client.get("/api/notifications/?type=file_downloaded", headers=headers).json()
    assert [n["id"] for n in only_downloads] == [str(second)]

    mark = client.post(f"/api/notifications/{first}/read", headers=headers)
    assert mark.status_code == 200
    assert mark.json()["read"] is True

    unread = client.get("/api/notifications/?is_read=false", headers=headers).json()
    assert [n["id"] for n in unread] == [str(second)]

    assert client.delete(f"/api/notifications/{second}", headers=headers).status_code == 200
    remaining = client.get("/api/notifications/", headers=headers).json()
    assert [n["id"] for n in remaining] == [str(first)]


def test_mark_all_read_and_stats(client):
    user_id, headers = create_user()
    seed(user_id)
    seed(user_id)
    seed(user_id, "access_requested")

    stats = client.get("/api/notifications/stats", headers=headers).json()
    assert stats["total"] == 3
    assert stats["unread"] == 3
    assert stats["by_type"]["file_shared"] == 2
    assert stats["by_type"]["access_requested"] == 1
    assert stats["by_type"]["access_rejected"] == 0

    resp = client.post("/api/notifications/mark-all-read", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["updated"] == 3
    assert client.get("/api/notifications/stats", headers=headers).json()["unread"] == 0


def test_other_users_notifications_are_hidden(client):
    owner_id, _ = create_user()
    _, other_headers = create_user()
    notification_id = seed(owner_id)

    assert client.post(f"/api/notifications/{notification_id}/read", headers=other_headers).status_code == 404
    resp = client.delete(f"/api/notifications/{notification_id}", headers=other_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Notification not found"


def test_muted_types_are_skipped():
    user_id, _ = create_user(notification_types={"file_downloaded": False})
    db = TestingSessionLocal()
    try:
        assert notifications.notify(db, user_id, "file_downloaded", "t", "m") is None
        assert notifications.notify(db, user_id, "file_shared", "t", "m") is not None
        assert db.query(models.Notification).filter_by(user_id=user_id).count() == 1
    finally:
        db.close()


def test_email_mirror_respects_settings():
    loud_id, _ = create_user(email=f"loud-{uuid.uuid4()}@example.com")
    quiet_id, _ = create_user(email_notifications_enabled=False)
    seed(loud_id, title="Ping")
    seed(quiet_id, title="Ping")

    assert len(notify.EMAIL_OUTBOX) == 1
    to_email, subject, body = notify.EMAIL_OUTBOX[0]
    assert to_email.startswith("loud-")
    assert subject == f"{notify.SUBJECT_PREFIX} Ping"
    assert "Ping message" in body


def test_download_by_reader_notifies_owner(client):
    _, owner_headers = create_user()
    _, reader_headers = create_user(full_name="Dana Reader")
    file_id = upload(client, owner_headers, name="public.txt", shared=True)["id"]

    assert client.get(f"/api/files/{file_id}/download", headers=owner_headers).status_code == 200
    assert client.get("/api/notifications/", headers=owner_headers).json() == []

    assert client.get(f"/api/files/{file_id}/download", headers=reader_headers).status_code == 200
    notes = client.get("/api/notifications/", headers=owner_headers).json()
    assert [n["type"] for n in notes] == ["file_downloaded"]
    assert "Dana Reader" in notes[0]["message"]


def test_websocket_receives_notification_events(client):
    owner_id, owner_headers = create_user()
    _, reader_headers = create_user()
    file_id = upload(client, owner_headers, name="live.txt", shared=True)["id"]
    token = owner_headers["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/notifications?token={token}") as websocket:
        client.get(f"/api/files/{file_id}/download", headers=reader_headers)
        msg = json.loads(websocket.receive_text())
        assert msg["type"] == "notification_created"
        assert msg["data"]["type"] == "file_downloaded"
        assert msg["data"]["metadata"]["file_id"] == file_id


def test_email_failures_do_not_break_the_request(client, monkeypatch):
    _, owner_headers = create_user()
    _, requester_headers = create_user()
    file_id = upload(client, owner_headers, name="mailfail.txt", shared=False)["id"]

    def bad_port(*args, **kwargs):
        raise ValueError("invalid literal for int() with base 10: 'smtp'")

    monkeypatch.setattr(notifications.mailer, "send_notification_email", bad_port)
    resp = client.post(
        "/api/access-requests",
        json={"file_id": file_id, "message": "please"},
        headers=requester_headers,
    )
    assert resp.status_code == 201
    notes = client.get("/api/notifications/", headers=owner_headers).json()
    assert [n["type"] for n in notes] == ["access_requested"]


def test_recipient_lookup_failure_is_swallowed(monkeypatch):
    user_id, _ = create_user()

    def unavailable(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(notifications.user_settings, "wants_notification", lambda *args: True)
    monkeypatch.setattr(notifications.user_settings, "peek_settings", unavailable)
    db = TestingSessionLocal()
    try:
        stored = notifications.notify(db, user_id, "file_shared", "Shared", "a file was shared")
        assert stored is not None
        assert db.query(models.Notification).filter_by(user_id=user_id).count() == 1
    finally:
        db.close()
    assert notify.EMAIL_OUTBOX == []
