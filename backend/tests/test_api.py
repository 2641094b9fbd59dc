import pytest

from conftest import make_token


def _auth(user_id="user-1"):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def test_me_requires_bearer(client):
    assert client.get("/api/me").status_code == 401


def test_me_rejects_bad_token(client):
    response = client.get("/api/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_me_without_profile(client):
    response = client.get("/api/me", headers=_auth())
    assert response.status_code == 200
    assert response.json() is None


def test_me_returns_profile(client, add_profile):
    add_profile(moderation_status="approved", company="Acme")
    body = client.get("/api/me", headers=_auth()).json()
    assert body["user_id"] == "user-1"
    assert body["company"] == "Acme"
    assert body["onboarded"] is True
    assert body["moderation_status"] == "approved"


def test_directory_requires_onboarding(client):
    response = client.get("/api/directory", headers=_auth())
    assert response.status_code == 403
    assert response.json()["detail"] == "Onboarding not completed."


def test_directory_requires_approval(client, add_profile):
    add_profile(moderation_status="pending")
    response = client.get("/api/directory", headers=_auth())
    assert response.status_code == 403
    assert response.json()["detail"] == "Profile not approved."


def test_directory_json(client, add_profile):
    add_profile(moderation_status="approved")
    add_profile("user-2", full_name="Grace Hopper", graduation_year=2021, moderation_status="approved")

    body = client.get("/api/directory", params={"q": "grace"}, headers=_auth()).json()

    assert body["count"] == 1
    assert body["total_pages"] == 1
    assert body["rows"][0]["full_name"] == "Grace Hopper"
    assert "email" not in body["rows"][0]


def test_directory_invalid_year(client, add_profile):
    add_profile(moderation_status="approved")
    response = client.get("/api/directory", params={"year": "19x9"}, headers=_auth())
    assert response.status_code == 422
    assert response.json()["detail"] == "Please enter a valid year"


@pytest.mark.parametrize("params", [{"page": "99999999999999999999"}, {"page": "0"}])
def test_directory_page_out_of_range(client, add_profile, params):
    add_profile(moderation_status="approved")
    response = client.get("/api/directory", params=params, headers=_auth())
    assert response.status_code == 422


def test_directory_huge_year(client, add_profile):
    add_profile(moderation_status="approved")
    response = client.get("/api/directory", params={"year": "99999999999999999999"}, headers=_auth())
    assert response.status_code == 422
    assert response.json()["detail"] == "Please enter a valid year"
