from .conftest import client, create_user, upload
from filegate import notify
from filegate.routes.files import _content_disposition
import uuid


def test_upload_and_list(client):
    owner_id, headers = create_user()
    created = upload(client, headers, name="notes.txt", content=b"testcontent")
    assert created["owner_id"] == str(owner_id)
    assert created["size"] == len(b"testcontent")
    assert created["mime_type"] == "text/plain"
    assert created["is_encrypted"] is False
    assert "storage_path" not in created

    listed = client.get("/api/files", headers=headers).json()
    assert [f["id"] for f in listed] == [created["id"]]

    download = client.get(f"/api/files/{created['id']}/download", headers=headers)
    assert download.status_code == 200
    assert download.content == b"testcontent"
    assert 'filename="notes.txt"' in download.headers["content-disposition"]


def test_bytes_land_under_owner_namespace(client, tmp_path):
    owner_id, headers = create_user()
    upload(client, headers, name="place.txt")
    stored = list((tmp_path / "uploads" / str(owner_id)).iterdir())
    assert len(stored) == 1
    assert stored[0].name.endswith("place.txt")


def test_private_default_follows_settings(client):
    _, private_headers = create_user()
    _, open_headers = create_user(private_files_by_default=False)
    assert upload(client, private_headers)["shared"] is False
    assert upload(client, open_headers)["shared"] is True
    assert upload(client, open_headers, shared=False)["shared"] is False


def test_private_files_look_missing_to_others(client):
    _, owner_headers = create_user()
    _, other_headers = create_user()
    file_id = upload(client, owner_headers, shared=False)["id"]

    hidden = client.get(f"/api/files/{file_id}", headers=other_headers)
    missing = client.get(f"/api/files/{uuid.uuid4()}", headers=other_headers)
    assert hidden.status_code == missing.status_code == 404
    assert hidden.json() == missing.json() == {"detail": "File not found", "kind": "not_found"}
    assert client.get(f"/api/files/{file_id}/download", headers=other_headers).status_code == 404

    access = client.get(f"/api/files/{uuid.uuid4()}/access", headers=other_headers).json()
    assert access["can_read"] is False


def test_toggle_shared_and_shared_listing(client):
    _, owner_headers = create_user()
    _, other_headers = create_user()
    file_id = upload(client, owner_headers, shared=False)["id"]

    shared_ids = [f["id"] for f in client.get("/api/files/shared", headers=other_headers).json()]
    assert file_id not in shared_ids

    resp = client.patch(f"/api/files/{file_id}/shared", json={"shared": True}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["shared"] is True
    shared_ids = [f["id"] for f in client.get("/api/files/shared", headers=other_headers).json()]
    assert file_id in shared_ids
    assert client.get(f"/api/files/{file_id}", headers=other_headers).status_code == 200

    denied = client.patch(f"/api/files/{file_id}/shared", json={"shared": False}, headers=other_headers)
    assert denied.status_code == 404


def test_sharing_notifies_pending_requesters(client):
    _, owner_headers = create_user()
    _, requester_headers = create_user()
    file_id = upload(client, owner_headers, name="draft.txt", shared=False)["id"]
    client.post(
        "/api/access-requests",
        json={"file_id": file_id, "message": "can I see the draft?"},
        headers=requester_headers,
    )

    client.patch(f"/api/files/{file_id}/shared", json={"shared": True}, headers=owner_headers)
    notes = client.get("/api/notifications/", headers=requester_headers).json()
    assert [n["type"] for n in notes] == ["file_shared"]
    assert notes[0]["metadata"]["file_id"] == file_id

    # flipping an already shared file does not notify again
    client.patch(f"/api/files/{file_id}/shared", json={"shared": True}, headers=owner_headers)
    assert len(client.get("/api/notifications/", headers=requester_headers).json()) == 1


def test_delete_removes_requests_and_bytes(client, tmp_path):
    owner_id, owner_headers = create_user()
    _, requester_headers = create_user()
    file_id = upload(client, owner_headers, shared=False)["id"]
    req = client.post(
        "/api/access-requests",
        json={"file_id": file_id, "message": "hi"},
        headers=requester_headers,
    ).json()

    assert client.delete(f"/api/files/{file_id}", headers=requester_headers).status_code == 404
    assert client.delete(f"/api/files/{file_id}", headers=owner_headers).status_code == 204

    assert client.get("/api/access-requests?type=sent", headers=requester_headers).json() == []
    assert client.post(f"/api/access-requests/{req['id']}/cancel", headers=requester_headers).status_code == 404
    assert list((tmp_path / "uploads" / str(owner_id)).iterdir()) == []


def test_invalid_encryption_metadata(client):
    _, headers = create_user()
    resp = client.post(
        "/api/files/upload",
        data={"is_encrypted": "true", "file_key": "k", "encryption_metadata": "[1, 2]"},
        files={"upload": ("meta.bin", b"x", "application/octet-stream")},
        headers=headers,
    )
    assert resp.status_code == 400


def test_email_sent_for_access_request(client):
    _, owner_headers = create_user()
    _, requester_headers = create_user()
    file_id = upload(client, owner_headers, shared=False)["id"]
    client.post(
        "/api/access-requests",
        json={"file_id": file_id, "message": "hi"},
        headers=requester_headers,
    )
    assert [subject for _, subject, _ in notify.EMAIL_OUTBOX] == [f"{notify.SUBJECT_PREFIX} New Access Request"]


def test_download_with_non_latin_name(client):
    _, owner_headers = create_user()
    _, reader_headers = create_user()
    file_id = upload(client, owner_headers, name="报告.txt", content=b"quarterly", shared=True)["id"]

    resp = client.get(f"/api/files/{file_id}/download", headers=reader_headers)
    assert resp.status_code == 200
    assert resp.content == b"quarterly"
    disposition = resp.headers["content-disposition"]
    assert 'filename="__.txt"' in disposition
    assert "filename*=UTF-8''%E6%8A%A5%E5%91%8A.txt" in disposition

    notes = client.get("/api/notifications/", headers=owner_headers).json()
    assert [n["type"] for n in notes] == ["file_downloaded"]


def test_content_disposition_escapes_quotes():
    disposition = _content_disposition('say "hi".txt')
    assert 'filename="say _hi_.txt"' in disposition
    assert "filename*=UTF-8''say%20%22hi%22.txt" in disposition
