"""
Tests for folder endpoints, the folder quota and plan status
"""
import pytest
from app.models.folder import Folder, NoteFolder
from app.models.note import Note
from app.models.subscription import Subscription
from app.models.user import User


def add_folders(db_session, user_id, count):
    folders = [Folder(user_id=user_id, name=f"folder {i}") for i in range(count)]
    db_session.add_all(folders)
    db_session.commit()
    return folders


def test_create_folder(client, db_session, test_user, login):
    login(test_user.id)

    response = client.post("/api/v1/folders", json={"name": "  Work "})

    assert response.status_code == 201
    assert response.json()["name"] == "Work"


def test_create_folder_rejects_empty_name(client, db_session, test_user, login):
    login(test_user.id)

    response = client.post("/api/v1/folders", json={"name": ""})

    assert response.status_code == 422


def test_create_folder_denied_at_free_limit(client, db_session, test_user, login):
    add_folders(db_session, test_user.id, 5)
    login(test_user.id)

    response = client.post("/api/v1/folders", json={"name": "sixth"})

    assert response.status_code == 402
    detail = response.json()["detail"]
    assert detail["reason"] == "FolderLimitReached"
    assert detail["limit"] == 5
    assert detail["current"] == 5
    assert db_session.query(Folder).filter(Folder.user_id == test_user.id).count() == 5


def test_deleting_a_folder_frees_a_slot(client, db_session, test_user, login):
    folders = add_folders(db_session, test_user.id, 5)
    login(test_user.id)

    assert client.delete(f"/api/v1/folders/{folders[0].id}").status_code == 204
    assert client.post("/api/v1/folders", json={"name": "replacement"}).status_code == 201


def test_canceled_pro_user_falls_back_to_free_limit(client, db_session, make_user, login):
    user = make_user(plan="pro", status="canceled")
    add_folders(db_session, user.id, 5)
    login(user.id)

    response = client.post("/api/v1/folders", json={"name": "sixth"})

    assert response.status_code == 402


def test_pro_user_creates_many_folders(client, db_session, make_user, login):
    user = make_user(plan="pro", status="active")
    add_folders(db_session, user.id, 10)
    login(user.id)

    response = client.post("/api/v1/folders", json={"name": "eleventh"})

    assert response.status_code == 201


def test_rename_folder(client, db_session, test_user, login):
    folder = add_folders(db_session, test_user.id, 1)[0]
    login(test_user.id)

    response = client.patch(f"/api/v1/folders/{folder.id}", json={"name": "Renamed"})

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"


def test_other_users_folder_is_not_found(client, db_session, make_user, login):
    owner = make_user(plan="free")
    intruder = make_user(plan="free")
    folder = add_folders(db_session, owner.id, 1)[0]
    login(intruder.id)

    assert client.patch(f"/api/v1/folders/{folder.id}", json={"name": "mine"}).status_code == 404
    assert client.get(f"/api/v1/folders/{folder.id}/notes").status_code == 404


def test_folder_membership(client, db_session, test_user, login):
    folder = add_folders(db_session, test_user.id, 1)[0]
    note = Note(user_id=test_user.id, title="filed")
    db_session.add(note)
    db_session.commit()
    login(test_user.id)

    assert client.put(f"/api/v1/folders/{folder.id}/notes/{note.id}").status_code == 200
    # Adding twice keeps a single link
    assert client.put(f"/api/v1/folders/{folder.id}/notes/{note.id}").status_code == 200

    listed = client.get(f"/api/v1/folders/{folder.id}/notes").json()
    assert [item["id"] for item in listed] == [str(note.id)]

    filtered = client.get("/api/v1/notes", params={"folder_id": str(folder.id)}).json()
    assert [item["id"] for item in filtered] == [str(note.id)]

    removed = client.delete(f"/api/v1/folders/{folder.id}/notes/{note.id}")
    assert removed.json() == {"success": True, "removed": True}
    assert client.get(f"/api/v1/folders/{folder.id}/notes").json() == []


def test_create_note_inside_folder(client, db_session, test_user, login):
    folder = add_folders(db_session, test_user.id, 1)[0]
    login(test_user.id)

    response = client.post("/api/v1/notes", json={"title": "inside", "folder_id": str(folder.id)})

    assert response.status_code == 201
    assert db_session.query(NoteFolder).filter(NoteFolder.folder_id == folder.id).count() == 1


def test_deleting_folder_keeps_notes(client, db_session, test_user, login):
    folder = add_folders(db_session, test_user.id, 1)[0]
    note = Note(user_id=test_user.id, title="survivor")
    db_session.add(note)
    db_session.flush()
    db_session.add(NoteFolder(note_id=note.id, folder_id=folder.id))
    db_session.commit()
    login(test_user.id)

    response = client.delete(f"/api/v1/folders/{folder.id}")

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.query(Note).count() == 1
    assert db_session.query(NoteFolder).count() == 0


def test_subscription_snapshot_for_free_user(client, db_session, test_user, login):
    add_folders(db_session, test_user.id, 2)
    db_session.add(Note(user_id=test_user.id, title="a"))
    db_session.add(Note(user_id=test_user.id, title="b", is_trashed=True))
    db_session.commit()
    login(test_user.id)

    response = client.get("/api/v1/subscription")

    assert response.status_code == 200
    data = response.json()
    assert data["plan"] == "free"
    assert data["status"] == "active"
    assert data["is_entitled"] is False
    assert data["quota"] == {
        "notes_count": 1,
        "folders_count": 2,
        "note_limit": 20,
        "folder_limit": 5,
    }


def test_subscription_snapshot_for_pro_user(client, db_session, make_user, login):
    user = make_user(plan="pro", status="active")
    login(user.id)

    data = client.get("/api/v1/subscription").json()

    assert data["plan"] == "pro"
    assert data["is_entitled"] is True
    assert data["quota"]["note_limit"] is None
    assert data["quota"]["folder_limit"] is None


def test_provision_is_idempotent(client, db_session, make_user, login):
    user = make_user()
    login(user.id)

    first = client.post("/api/v1/subscription/provision")
    second = client.post("/api/v1/subscription/provision")

    assert first.json() == {"created": True, "plan": "free", "status": "active"}
    assert second.json() == {"created": False, "plan": "free", "status": "active"}
    assert db_session.query(Subscription).filter(Subscription.user_id == user.id).count() == 1


def test_delete_account_removes_everything(client, db_session, make_user, login):
    user = make_user(plan="pro", status="active")
    add_folders(db_session, user.id, 2)
    db_session.add(Note(user_id=user.id, title="gone"))
    db_session.commit()
    user_id = user.id
    login(user_id)

    response = client.delete("/api/v1/user/delete-account")

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.query(User).filter(User.id == user_id).count() == 0
    assert db_session.query(Subscription).filter(Subscription.user_id == user_id).count() == 0
    assert db_session.query(Note).filter(Note.user_id == user_id).count() == 0
    assert db_session.query(Folder).filter(Folder.user_id == user_id).count() == 0
