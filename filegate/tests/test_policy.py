import uuid

import pytest

from filegate import models
from filegate.errors import NotFound, Unauthorized
from filegate.services import policy
from .conftest import create_user


def make_file(db, owner_id, *, shared=False, is_encrypted=False, name="report.pdf"):
    db_file = models.File(
        owner_id=owner_id,
        name=name,
        storage_path=f"/tmp/{uuid.uuid4()}",
        size=3,
        shared=shared,
        is_encrypted=is_encrypted,
    )
    db.add(db_file)
    db.commit()
    db.refresh(db_file)
    return db_file


def add_request(db, db_file, requester_id, status):
    req = models.AccessRequest(
        file_id=db_file.id,
        requester_id=requester_id,
        owner_id=db_file.owner_id,
        status=status,
        message="please",
    )
    db.add(req)
    db.commit()
    return req


def test_owner_always_reads(db):
    owner_id, _ = create_user()
    db_file = make_file(db, owner_id)
    assert policy.can_read(db, db_file, owner_id)


def test_shared_file_readable_by_anyone(db):
    owner_id, _ = create_user()
    other_id, _ = create_user()
    db_file = make_file(db, owner_id, shared=True)
    assert policy.can_read(db, db_file, other_id)


def test_private_file_requires_approved_request(db):
    owner_id, _ = create_user()
    other_id, _ = create_user()
    db_file = make_file(db, owner_id)
    assert not policy.can_read(db, db_file, other_id)

    add_request(db, db_file, other_id, "rejected")
    assert not policy.can_read(db, db_file, other_id)

    add_request(db, db_file, other_id, "pending")
    assert not policy.can_read(db, db_file, other_id)

    add_request(db, db_file, other_id, "approved")
    assert policy.can_read(db, db_file, other_id)


def test_approval_is_per_requester(db):
    owner_id, _ = create_user()
    approved_id, _ = create_user()
    stranger_id, _ = create_user()
    db_file = make_file(db, owner_id)
    add_request(db, db_file, approved_id, "approved")
    assert policy.can_read(db, db_file, approved_id)
    assert not policy.can_read(db, db_file, stranger_id)


def test_key_retrieval_needs_encrypted_file_with_key(db):
    owner_id, _ = create_user()
    plain = make_file(db, owner_id, shared=True)
    assert not policy.can_retrieve_key(db, plain, owner_id)

    encrypted = make_file(db, owner_id, is_encrypted=True)
    assert not policy.can_retrieve_key(db, encrypted, owner_id)

    db.add(models.FileKey(file_id=encrypted.id, encrypted_key="opaque"))
    db.commit()
    assert policy.can_retrieve_key(db, encrypted, owner_id)


def test_unreadable_and_missing_files_look_the_same(db):
    owner_id, _ = create_user()
    other_id, _ = create_user()
    db_file = make_file(db, owner_id)

    with pytest.raises(NotFound) as hidden:
        policy.get_readable_file(db, db_file.id, other_id)
    with pytest.raises(NotFound) as missing:
        policy.get_readable_file(db, uuid.uuid4(), other_id)
    assert hidden.value.public_detail == missing.value.public_detail == "File not found"


def test_get_owned_file_rejects_non_owner(db):
    owner_id, _ = create_user()
    other_id, _ = create_user()
    db_file = make_file(db, owner_id, shared=True)

    assert policy.get_owned_file(db, db_file.id, owner_id).id == db_file.id
    with pytest.raises(Unauthorized) as exc:
        policy.get_owned_file(db, db_file.id, other_id)
    assert exc.value.status_code == 404
    assert exc.value.public_kind == "not_found"
