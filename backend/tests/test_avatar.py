import pytest
from supabase import StorageException

from alumninet.models import Profile
from alumninet.services.avatar_service import (
    DEFAULT_AVATAR,
    AvatarRejected,
    avatar_object_path,
    get_avatar_url,
    upload_avatar,
    validate_avatar,
)
from alumninet.services.supabase_client import SupabaseStorageError
from conftest import ONBOARDING_FORM

SIX_MB = 6 * 1024 * 1024
EXISTING = "https://cdn.example.com/ada.png"


def _stored(db, user_id="user-1"):
    db.expire_all()
    return db.get(Profile, user_id)


def test_validate_rejects_non_images():
    with pytest.raises(AvatarRejected, match="image file"):
        validate_avatar("application/pdf", 100)


def test_validate_size_limit():
    with pytest.raises(AvatarRejected, match="max 5MB"):
        validate_avatar("image/png", SIX_MB)
    validate_avatar("image/png", 5 * 1024 * 1024)


def test_oversized_upload_makes_no_network_call(supabase):
    with pytest.raises(AvatarRejected):
        upload_avatar("user-1", "token", "big.png", b"\0" * SIX_MB, "image/png")
    assert supabase.calls == []


def test_object_path_is_scoped_to_user():
    path = avatar_object_path("user-1", "../My Photo.png", now_ms=1700000000000)
    assert path == "profiles/user-1/1700000000000-My-Photo.png"


def test_upload_returns_public_url(supabase):
    url = upload_avatar("user-1", "user-token", "me.png", b"png-bytes", "image/png")

    assert url.startswith("https://example.supabase.co/storage/v1/object/public/avatars/profiles/user-1/")
    name, args, headers = supabase.calls[0]
    bucket, path, content, options = args
    assert name == "upload"
    assert bucket == "avatars"
    assert path.startswith("profiles/user-1/") and path.endswith("-me.png")
    assert content == b"png-bytes"
    assert options["upsert"] == "true"
    assert options["content-type"] == "image/png"
    assert headers["Authorization"] == "Bearer user-token"


def test_upload_error_is_reported(supabase):
    supabase.on(
        "upload",
        error=StorageException({"message": "new row violates row-level security policy", "statusCode": 403}),
    )
    with pytest.raises(SupabaseStorageError, match="row-level security"):
        upload_avatar("user-1", "user-token", "me.png", b"png-bytes", "image/png")


def test_avatar_url_resolution(supabase):
    assert get_avatar_url(None) == DEFAULT_AVATAR
    assert get_avatar_url(EXISTING) == EXISTING
    assert get_avatar_url("profiles/u/1-a.png") == (
        "https://example.supabase.co/storage/v1/object/public/avatars/profiles/u/1-a.png"
    )


def test_oversized_avatar_keeps_existing_reference(client, sign_in, add_profile, supabase, db):
    add_profile(avatar_url=EXISTING)
    sign_in()

    response = client.post(
        "/onboarding",
        data=ONBOARDING_FORM,
        files={"avatar": ("big.png", b"\0" * SIX_MB, "image/png")},
    )

    assert response.status_code == 303
    assert supabase.calls == []
    row = _stored(db)
    assert row.avatar_url == EXISTING
    assert row.onboarded is True

    # The size notice shows on the next rendered page
    page = client.get("/dashboard")
    assert "Image too large (max 5MB)." in page.text


def test_failed_upload_still_saves_profile(client, sign_in, supabase, db):
    supabase.on("upload", error=StorageException({"message": "storage down", "statusCode": 500}))
    sign_in()

    response = client.post(
        "/onboarding",
        data=ONBOARDING_FORM,
        files={"avatar": ("me.png", b"png-bytes", "image/png")},
    )

    assert response.status_code == 303
    row = _stored(db)
    assert row.onboarded is True
    assert row.avatar_url is None


def test_successful_upload_replaces_avatar(client, sign_in, add_profile, supabase, db):
    add_profile(avatar_url=EXISTING)
    sign_in()

    client.post(
        "/onboarding",
        data=ONBOARDING_FORM,
        files={"avatar": ("me.png", b"png-bytes", "image/png")},
    )

    assert _stored(db).avatar_url.startswith("https://example.supabase.co/storage/v1/object/public/avatars/")


def test_remove_avatar(client, sign_in, add_profile, db):
    add_profile(avatar_url=EXISTING)
    sign_in()
    client.post("/onboarding", data={**ONBOARDING_FORM, "remove_avatar": "true"})
    assert _stored(db).avatar_url is None
