from types import SimpleNamespace
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy.exc import OperationalError

from alumninet.core import gate
from alumninet.core.session import ACCESS_COOKIE
from alumninet.services import profiles
from conftest import cookie_cleared


def _redirect(response):
    parts = urlsplit(response.headers["location"])
    return parts.path, parse_qs(parts.query)


def test_public_and_asset_paths_skip_identity_lookup(client, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("identity lookup on a public path")

    monkeypatch.setattr(gate, "resolve_viewer", fail)
    assert client.get("/auth/login").status_code == 200
    assert client.get("/auth/signup").status_code == 200
    assert client.get("/health").json() == {"status": "ok"}


def test_anonymous_dashboard_redirects_to_login(client):
    response = client.get("/dashboard")
    assert response.status_code == 307
    path, query = _redirect(response)
    assert path == "/auth/login"
    assert query == {"redirect": ["/dashboard"]}


def test_login_redirect_drops_query_string(client):
    response = client.get("/directory?q=ada&page=2")
    path, query = _redirect(response)
    assert path == "/auth/login"
    assert query == {"redirect": ["/directory"]}


def test_non_get_redirect_uses_see_other(client):
    response = client.post("/onboarding", data={"full_name": "Ada"})
    assert response.status_code == 303
    assert _redirect(response)[0] == "/auth/login"


def test_invalid_token_redirects_and_clears_cookies(client):
    client.cookies.set(ACCESS_COOKIE, "not-a-jwt")
    response = client.get("/dashboard")
    assert _redirect(response)[0] == "/auth/login"
    assert cookie_cleared(response, ACCESS_COOKIE)


def test_not_onboarded_is_sent_to_onboarding(client, sign_in):
    sign_in()
    response = client.get("/dashboard")
    assert response.status_code == 307
    assert response.headers["location"] == "/onboarding"

    response = client.get("/directory")
    assert response.headers["location"] == "/onboarding"


def test_onboarding_page_renders_for_new_user(client, sign_in):
    sign_in()
    response = client.get("/onboarding")
    assert response.status_code == 200
    assert "Complete your profile" in response.text


def test_profile_read_failure_falls_back_to_onboarding(client, sign_in, add_profile, monkeypatch):
    add_profile(moderation_status="approved")
    sign_in()

    def broken(db, user_id):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(profiles, "load_profile", broken)
    response = client.get("/directory")
    assert response.headers["location"] == "/onboarding"


def test_pending_profile_cannot_open_directory(client, sign_in, add_profile):
    add_profile(moderation_status="pending")
    sign_in()
    response = client.get("/directory")
    assert response.status_code == 307
    assert response.headers["location"] == "/dashboard"


def test_dashboard_shows_pending_banner(client, sign_in, add_profile):
    add_profile(moderation_status="pending")
    sign_in()
    response = client.get("/dashboard")
    assert response.status_code == 200
    assert "Waiting for approval." in response.text
    assert "Welcome, Ada Lovelace!" in response.text


def test_dashboard_shows_rejection_reason(client, sign_in, add_profile):
    add_profile(moderation_status="rejected", moderation_reason="Graduation year does not match records")
    sign_in()
    response = client.get("/dashboard")
    assert "Application Rejected." in response.text
    assert "Graduation year does not match records" in response.text


def test_approved_profile_opens_directory(client, sign_in, add_profile):
    add_profile(moderation_status="approved")
    sign_in()
    response = client.get("/directory")
    assert response.status_code == 200
    assert "Alumni Directory" in response.text


def test_page_level_check_matches_middleware(sign_in, add_profile, client):
    add_profile(onboarded=False)
    sign_in()

    def fake_request(path):
        return SimpleNamespace(
            url=SimpleNamespace(path=path),
            cookies=dict(client.cookies),
            state=SimpleNamespace(),
        )

    for path in ("/dashboard", "/directory"):
        with pytest.raises(gate.GateRedirect) as exc_info:
            gate.page_viewer(fake_request(path))
        assert exc_info.value.location == "/onboarding"
    assert gate.page_viewer(fake_request("/onboarding")).is_authenticated
