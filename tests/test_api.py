"""
End-to-end tests through the HTTP API
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.core.config import settings
from app.core.db import get_db
from app.models import Event, Media, Message
from app.services.storage_service import get_storage
from main import app

from conftest import HOST_ID, OTHER_HOST_ID, hours_from_now


def host_headers(host_id=HOST_ID):
    return {"Authorization": f"Bearer {settings.ADMIN_TOKEN}", "X-Host-Id": host_id}


@pytest.fixture
def client(db_session, storage, monkeypatch):
    monkeypatch.setattr(settings, "USE_FIREBASE", False)
    monkeypatch.setattr(settings, "DELETE_VERIFY_DELAY_SECONDS", 0.0)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, **payload):
    payload.setdefault("name", "Ada & Tunde's Wedding")
    payload.setdefault("type", "wedding")
    response = client.post("/host/events", json=payload, headers=host_headers())
    assert response.status_code == 201
    return response.json()["data"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_host_routes_require_valid_token(client):
    response = client.get("/host/events", headers={"Authorization": "Bearer wrong", "X-Host-Id": HOST_ID})
    assert response.status_code == 401

    response = client.get("/host/events", headers={"Authorization": f"Bearer {settings.ADMIN_TOKEN}"})
    assert response.status_code == 401


def test_create_and_list_events(client):
    created = _create(client)

    assert created["share_url"].endswith(f"/e/{created['share_code']}")
    assert created["is_uploads_enabled"] is True
    assert created["is_live_feed_enabled"] is False

    response = client.get("/host/events", headers=host_headers())
    assert [e["id"] for e in response.json()["data"]] == [created["id"]]

    response = client.get("/host/events", headers=host_headers(OTHER_HOST_ID))
    assert response.json()["data"] == []


def test_create_event_blank_name(client):
    response = client.post("/host/events", json={"name": "  "}, headers=host_headers())

    assert response.status_code == 422
    assert response.json()["error_code"] == "validation_error"


def test_toggle_setting_route(client):
    created = _create(client)

    response = client.post(
        f"/host/events/{created['id']}/settings/is_locked", json={"value": True}, headers=host_headers()
    )
    assert response.status_code == 200
    assert response.json()["data"]["is_locked"] is True

    response = client.post(f"/host/events/{created['id']}/settings/is_uploads_enabled", headers=host_headers())
    assert response.json()["data"]["is_uploads_enabled"] is False
    assert response.json()["data"]["is_locked"] is True

    response = client.post(f"/host/events/{created['id']}/settings/slug", headers=host_headers())
    assert response.status_code == 422


def test_guest_view_and_message(client, db_session):
    created = _create(client)
    code = created["share_code"]

    view = client.get(f"/guest/events/{code}").json()["data"]
    assert view["uploads_state"] == "uploads_open"
    assert view["type_label"] == "Wedding"

    response = client.post(f"/guest/events/{code}/messages", json={"guest_name": "Chioma", "message": "Much love"})
    assert response.status_code == 201
    assert response.json()["data"]["kind"] == "message"
    assert db_session.query(Message).count() == 1


def test_guest_unknown_event(client):
    response = client.get("/guest/events/nope-12345")

    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


def test_locked_event_rejects_guest_writes(client, make_event, db_session):
    event = make_event(is_locked=True)

    response = client.post(f"/guest/events/{event.slug}/messages", json={"guest_name": "Chioma", "message": "Hi"})

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "locked"
    assert body["details"]["is_locked"] is True
    assert db_session.query(Message).count() == 0


def test_not_started_event_rejects_uploads(client, make_event, storage):
    event = make_event(event_date=hours_from_now(5))

    response = client.post(
        f"/guest/events/{event.slug}/media",
        data={"guest_name": "Chioma"},
        files=[("files", ("a.jpg", b"jpeg", "image/jpeg"))],
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "not_started"
    assert storage.calls == 0


def test_guest_media_upload(client, make_event, storage, db_session):
    event = make_event()

    response = client.post(
        f"/guest/events/{event.slug}/media",
        data={"guest_name": "Chioma"},
        files=[
            ("files", ("a.jpg", b"jpeg", "image/jpeg")),
            ("files", ("b.mp4", b"mp4", "video/mp4")),
        ],
    )

    assert response.status_code == 201
    assert [u["kind"] for u in response.json()["data"]] == ["photo", "video"]
    assert storage.calls == 2
    assert db_session.query(Media).count() == 2


def test_guest_upload_partial_failure(client, make_event, storage, db_session):
    storage.fail_on = 2
    event = make_event()

    response = client.post(
        f"/guest/events/{event.slug}/media",
        data={"guest_name": "Chioma"},
        files=[("files", (f"{i}.jpg", b"jpeg", "image/jpeg")) for i in range(3)],
    )

    assert response.status_code == 500
    assert response.json()["message"] == "Could not upload files. Please try again."
    assert db_session.query(Media).count() == 1


def test_feed_snapshot_requires_live_feed(client, make_event):
    disabled = make_event()
    enabled = make_event(is_live_feed_enabled=True)

    assert client.get(f"/guest/events/{disabled.slug}/feed").status_code == 403
    response = client.get(f"/guest/events/{enabled.slug}/feed")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_delete_event_route(client, db_session):
    created = _create(client)
    client.post(
        f"/guest/events/{created['share_code']}/messages", json={"guest_name": "Chioma", "message": "Hi"}
    )

    response = client.post(
        f"/host/events/{created['id']}/delete", json={"confirm_name": "ada & tunde's wedding"}, headers=host_headers()
    )
    assert response.status_code == 422
    assert db_session.query(Event).count() == 1

    response = client.post(
        f"/host/events/{created['id']}/delete", json={"confirm_name": created["name"]}, headers=host_headers()
    )
    assert response.status_code == 200
    assert response.json()["data"]["steps"] == {"delete": "success", "verify": "success"}
    assert db_session.query(Message).count() == 0

    response = client.get(f"/host/events/{created['id']}/deleted", headers=host_headers())
    assert response.json()["data"]["deleted"] is True


def test_delete_other_hosts_event_is_not_found(client, make_event, db_session):
    event = make_event(user_id=OTHER_HOST_ID)

    response = client.post(
        f"/host/events/{event.id}/delete", json={"confirm_name": event.title}, headers=host_headers()
    )

    assert response.status_code == 404
    assert db_session.query(Event).count() == 1


def test_uploads_listing_and_delete(client, make_event, db_session):
    event = make_event()
    message = Message(event_id=event.id, message="Hi", name="Chioma")
    db_session.add(message)
    db_session.commit()

    response = client.get(f"/host/events/{event.id}/uploads", headers=host_headers())
    assert response.json()["data"]["message_count"] == 1

    response = client.delete(f"/host/events/{event.id}/uploads/{message.id}", headers=host_headers())
    assert response.json()["data"]["deleted"] is True
    assert db_session.query(Message).count() == 0


def test_share_link_and_qr(client, make_event):
    event = make_event()

    share = client.get(f"/host/events/{event.id}/share", headers=host_headers()).json()["data"]
    assert share["share_url"] == f"{settings.BASE_URL}/e/{event.slug}"

    response = client.get(share["qr_url"])
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")

    response = client.get(share["card_url"], headers=host_headers())
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")


def test_guestbook_export(client, make_event, db_session):
    event = make_event()
    db_session.add(Message(event_id=event.id, message="Hi", name="Chioma"))
    db_session.commit()

    response = client.get(f"/host/events/{event.id}/export/guestbook.xlsx", headers=host_headers())

    assert response.status_code == 200
    assert response.content[:2] == b"PK"


def test_guest_page_html(client, make_event):
    open_event = make_event()
    countdown = make_event(event_date=hours_from_now(24))

    response = client.get(f"/e/{open_event.slug}")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "Ada &amp; Tunde" in response.text

    assert client.get(f"/e/{countdown.slug}").status_code == 200
    assert client.get("/e/missing-00000").status_code == 404


def test_live_feed_websocket(client, make_event, db_session):
    event = make_event(is_live_feed_enabled=True)
    db_session.add(Message(event_id=event.id, message="First!", name="Chioma"))
    db_session.commit()

    with client.websocket_connect(f"/ws/events/{event.slug}/feed") as websocket:
        snapshot = websocket.receive_json()
        assert snapshot["type"] == "snapshot"
        assert snapshot["event_id"] == event.id
        assert snapshot["items"][0]["text"] == "First!"

        websocket.send_json({"type": "ping", "timestamp": 123})
        assert websocket.receive_json() == {"type": "pong", "timestamp": 123}


def test_live_feed_websocket_rejects_disabled_feed(client, make_event):
    event = make_event()

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/events/{event.slug}/feed") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4003
