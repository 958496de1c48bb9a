from fastapi.testclient import TestClient

from mockprep.api.app import create_app


def _signed_in_client(account) -> TestClient:
    client = TestClient(create_app())
    resp = client.post("/api/auth/sign-in", json={"email": "ada@example.com", "password": "first-secret"})
    assert resp.status_code == 200
    assert resp.json()["user_id"] == account.user_id
    client.headers["Authorization"] = f"Bearer {resp.json()['access_token']}"
    return client


def test_requests_without_token_are_rejected() -> None:
    client = TestClient(create_app())
    assert client.get("/api/settings").status_code == 401
    assert client.get("/api/profile", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_bad_credentials_return_401(account) -> None:
    client = TestClient(create_app())
    resp = client.post("/api/auth/sign-in", json={"email": "ada@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"


def test_settings_api(account) -> None:
    client = _signed_in_client(account)

    defaults = client.get("/api/settings")
    assert defaults.status_code == 200
    assert defaults.json()["difficulty_level"] == "medium"
    assert defaults.json()["question_count"] == 10

    rejected = client.patch("/api/settings", json={"question_count": 20})
    assert rejected.status_code == 422
    assert rejected.json()["errors"] == [{"field": "question_count", "message": "Maximum 15 questions allowed"}]

    updated = client.patch("/api/settings", json={"difficulty_level": "difficult", "question_count": "12"})
    assert updated.status_code == 200
    assert updated.json()["difficulty_level"] == "difficult"
    assert updated.json()["question_count"] == 12

    activity = client.get("/api/activity", params={"activity_type": "settings_change"})
    assert activity.status_code == 200
    assert [item["activity_type"] for item in activity.json()["items"]] == ["settings_change"]


def test_resume_api(account) -> None:
    client = _signed_in_client(account)

    assert client.get("/api/resume").json() is None

    wrong_type = client.post("/api/resume", files={"file": ("cv.png", b"png", "image/png")})
    assert wrong_type.status_code == 422

    uploaded = client.post("/api/resume", files={"file": ("cv.pdf", b"%PDF-1.4 resume", "application/pdf")})
    assert uploaded.status_code == 200
    assert uploaded.json()["file_name"] == "cv.pdf"
    assert uploaded.json()["file_size"] == len(b"%PDF-1.4 resume")

    assert client.get("/api/resume").json()["file_path"] == uploaded.json()["file_path"]
    assert client.delete("/api/resume").status_code == 204
    assert client.get("/api/resume").json() is None
    assert client.delete("/api/resume").status_code == 404


def test_profile_and_interviews_api(account) -> None:
    client = _signed_in_client(account)

    profile = client.patch("/api/profile", json={"name": "Ada King", "email": "ada@example.com"})
    assert profile.status_code == 200
    assert profile.json()["name"] == "Ada King"

    invalid = client.patch("/api/profile", json={"name": "", "email": "ada@example.com"})
    assert invalid.status_code == 422

    text = client.put("/api/profile/resume-text", json={"resume": "Ten years of Python."})
    assert text.json()["resume"] == "Ten years of Python."

    created = client.post("/api/interviews", json={"job_description": "Backend role", "num_questions": 8})
    assert created.status_code == 200
    assert [item["id"] for item in client.get("/api/interviews").json()] == [created.json()["id"]]

    password = client.post(
        "/api/profile/password",
        json={"current_password": "wrong", "new_password": "next-secret", "confirm_password": "next-secret"},
    )
    assert password.status_code == 401
    assert password.json()["detail"] == "Current password is incorrect"


def test_sign_out_revokes_token(account) -> None:
    client = _signed_in_client(account)
    assert client.post("/api/auth/sign-out").status_code == 204
    assert client.get("/api/profile").status_code == 401
