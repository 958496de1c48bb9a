import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from mockprep.api.app import create_app


def test_notification_stream_delivers_mutation_notices(account) -> None:
    with TestClient(create_app()) as client:
        token = client.post(
            "/api/auth/sign-in", json={"email": "ada@example.com", "password": "first-secret"}
        ).json()["access_token"]

        with client.websocket_connect(f"/api/notifications?token={token}") as ws:
            assert ws.receive_json() == {"type": "subscribed", "user_id": account.user_id}

            resp = client.patch(
                "/api/settings",
                json={"question_count": 12},
                headers={"Authorization": f"Bearer {token}"},
            )
            assert resp.status_code == 200

            assert ws.receive_json() == {
                "type": "notification",
                "title": "Settings updated",
                "description": "Your job preferences have been saved successfully.",
                "variant": "default",
            }


def test_notification_stream_rejects_bad_token() -> None:
    client = TestClient(create_app())
    with pytest.raises(WebSocketDisconnect) as info:
        with client.websocket_connect("/api/notifications?token=nope"):
            pass
    assert info.value.code == 4401
