import shutil
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.main import create_app
from conftest import BASE_URL, PNG_BYTES

ALICE = {"username": "alice", "email": "a@x.com", "password": "p"}


def create_user(client, files=None, **overrides):
    data = {**ALICE, **overrides}
    resp = client.post("/addUser", data=data, files=files)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_root_is_plain_text(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.text == "Hello World!"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_then_get_without_image(client):
    created = create_user(client)

    assert created["image"] is None
    assert created["username"] == "alice"
    resp = client.get(f"/users/{created['_id']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["_id"] == created["_id"]
    assert body["email"] == "a@x.com"
    assert body["image"] is None


def test_create_with_image_then_list_returns_absolute_url(client, png_file, upload_dir):
    created = create_user(client, files=png_file("my:photo?.png"))

    assert created["image"].startswith("/uploads/")
    assert created["image"].endswith("-my_photo_.png")
    assert len(list(upload_dir.iterdir())) == 1

    users = client.get("/users").json()
    assert len(users) == 1
    assert users[0]["image"] == f"{BASE_URL}{created['image']}"
    # The rewrite is response shaping only.
    assert client.get(f"/users/{created['_id']}").json()["image"] == created["image"]


def test_uploaded_image_is_served_statically_and_by_owner(client, png_file):
    created = create_user(client, files=png_file())

    static = client.get(created["image"])
    assert static.status_code == 200
    assert static.content == PNG_BYTES

    owned = client.get(f"/userImage/{created['_id']}")
    assert owned.status_code == 200
    assert owned.content == PNG_BYTES
    assert owned.headers["content-type"] == "image/png"


def test_update_without_file_preserves_image(client, png_file):
    created = create_user(client, files=png_file())

    resp = client.put(f"/users/{created['_id']}", data={"username": "bob"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == "bob"
    assert body["email"] == "a@x.com"
    assert body["image"] == created["image"]
    fetched = client.get(f"/users/{created['_id']}").json()
    assert fetched["username"] == "bob"
    assert fetched["image"] == created["image"]


def test_update_with_file_replaces_image(client, png_file):
    created = create_user(client, files=png_file("old.png"))

    resp = client.put(f"/users/{created['_id']}", data=ALICE, files=png_file("new.png"))

    assert resp.status_code == 200
    assert resp.json()["image"].endswith("-new.png")


def test_update_rejects_non_image(client, upload_dir):
    created = create_user(client)

    resp = client.put(
        f"/users/{created['_id']}",
        data={"username": "bob"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 400
    assert list(upload_dir.iterdir()) == []
    assert client.get(f"/users/{created['_id']}").json()["username"] == "alice"


def test_delete_then_get_is_not_found(client, png_file, upload_dir):
    created = create_user(client, files=png_file())

    resp = client.delete(f"/users/{created['_id']}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "User deleted successfully"}

    resp = client.get(f"/users/{created['_id']}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}
    # Image files outlive their user unless configured otherwise.
    assert len(list(upload_dir.iterdir())) == 1


def test_delete_can_remove_image(settings, png_file):
    settings = settings.model_copy(update={"DELETE_IMAGE_ON_USER_DELETE": True})
    with TestClient(create_app(settings)) as client:
        created = create_user(client, files=png_file())
        assert client.delete(f"/users/{created['_id']}").status_code == 200
    assert list(settings.UPLOAD_DIR.iterdir()) == []


def test_non_image_upload_is_rejected(client, upload_dir):
    resp = client.post(
        "/addUser",
        data=ALICE,
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Only image files are allowed"}
    assert list(upload_dir.iterdir()) == []
    assert client.get("/users").json() == []


@pytest.mark.parametrize("missing", ["username", "email", "password"])
def test_missing_required_field_is_client_error(client, png_file, upload_dir, missing):
    data = {k: v for k, v in ALICE.items() if k != missing}

    resp = client.post("/addUser", data=data, files=png_file())

    assert resp.status_code == 400
    assert missing in resp.json()["error"]
    assert list(upload_dir.iterdir()) == []


def test_blank_field_is_client_error(client):
    resp = client.post("/addUser", data={**ALICE, "email": "   "})
    assert resp.status_code == 400
    assert "email" in resp.json()["error"]


@pytest.mark.parametrize("user_id", [uuid4().hex, "not-an-object-id", "1234"])
@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/users/{}"),
        ("PUT", "/users/{}"),
        ("DELETE", "/users/{}"),
        ("GET", "/userImage/{}"),
    ],
)
def test_unknown_ids_are_not_found(client, method, path, user_id):
    kwargs = {"data": {"username": "bob"}} if method == "PUT" else {}
    resp = client.request(method, path.format(user_id), **kwargs)
    assert resp.status_code == 404


def test_user_image_not_found_without_image(client):
    created = create_user(client)

    resp = client.get(f"/userImage/{created['_id']}")

    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found or image not available"}


def test_user_image_not_found_when_file_missing(client, png_file, upload_dir):
    created = create_user(client, files=png_file())
    for path in upload_dir.iterdir():
        path.unlink()

    assert client.get(f"/userImage/{created['_id']}").status_code == 404


def test_failed_record_write_discards_upload(client, png_file, upload_dir, monkeypatch):
    repo = client.app.state.user_service.repo

    def broken_create(*args, **kwargs):
        raise OperationalError("INSERT INTO users", {}, Exception("database is down"))

    monkeypatch.setattr(repo, "create", broken_create)

    resp = client.post("/addUser", data=ALICE, files=png_file())

    assert resp.status_code == 500
    assert "database is down" in resp.json()["error"]
    assert list(upload_dir.iterdir()) == []


def test_server_error_details_can_be_hidden(client, monkeypatch):
    client.app.state.settings.EXPOSE_ERROR_DETAILS = False

    def broken_list(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("secret dsn"))

    monkeypatch.setattr(client.app.state.user_service.repo, "list_all", broken_list)

    resp = client.get("/users")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error"}


def test_create_accepts_json_body(client):
    resp = client.post("/addUser", json=ALICE)

    assert resp.status_code == 201
    body = resp.json()
    assert body["username"] == "alice"
    assert body["image"] is None


def test_update_accepts_json_body(client, png_file):
    created = create_user(client, files=png_file())

    resp = client.put(f"/users/{created['_id']}", json={"username": "bob"})

    assert resp.status_code == 200
    assert resp.json()["username"] == "bob"
    fetched = client.get(f"/users/{created['_id']}").json()
    assert fetched["username"] == "bob"
    assert fetched["email"] == "a@x.com"
    assert fetched["image"] == created["image"]


def test_json_body_is_validated(client):
    resp = client.post("/addUser", json={"username": "alice", "email": "a@x.com"})
    assert resp.status_code == 400
    assert "password" in resp.json()["error"]

    resp = client.post("/addUser", json=["alice"])
    assert resp.status_code == 400

    resp = client.post("/addUser", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_unsupported_body_type_is_rejected(client):
    created = create_user(client)

    resp = client.put(
        f"/users/{created['_id']}",
        content=b"username=bob",
        headers={"content-type": "text/plain"},
    )

    assert resp.status_code == 415
    assert client.get(f"/users/{created['_id']}").json()["username"] == "alice"


def test_failed_update_write_discards_new_upload(client, png_file, upload_dir, monkeypatch):
    created = create_user(client)

    def broken_update(*args, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("database is down"))

    monkeypatch.setattr(client.app.state.user_service.repo, "update_by_id", broken_update)

    resp = client.put(f"/users/{created['_id']}", data={"username": "bob"}, files=png_file())

    assert resp.status_code == 500
    assert "database is down" in resp.json()["error"]
    assert list(upload_dir.iterdir()) == []


def test_update_of_vanished_user_discards_new_upload(client, png_file, upload_dir, monkeypatch):
    created = create_user(client)
    monkeypatch.setattr(client.app.state.user_service.repo, "update_by_id", lambda *args, **kwargs: None)

    resp = client.put(f"/users/{created['_id']}", data={"username": "bob"}, files=png_file())

    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}
    assert list(upload_dir.iterdir()) == []


def test_disk_write_failure_is_server_error(client, png_file, upload_dir):
    shutil.rmtree(upload_dir)

    resp = client.post("/addUser", data=ALICE, files=png_file())

    assert resp.status_code == 500
    assert "Failed to store uploaded file" in resp.json()["error"]
    assert client.get("/users").json() == []
