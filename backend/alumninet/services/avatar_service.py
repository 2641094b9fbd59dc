from __future__ import annotations

import logging
import re
import time

import httpx
from supabase import StorageException

from alumninet.core.config import settings
from alumninet.services.supabase_client import SupabaseConfigError, SupabaseStorageError, get_client

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")

DEFAULT_AVATAR = "/static/img/default-avatar.svg"


class AvatarRejected(ValueError):
    """The file was refused before any upload was attempted."""


def validate_avatar(content_type: str | None, size: int) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise AvatarRejected("Please select an image file.")
    if size > settings.avatar_max_bytes:
        limit_mb = settings.avatar_max_bytes // (1024 * 1024)
        raise AvatarRejected(f"Image too large (max {limit_mb}MB).")


def _safe_filename(filename: str | None) -> str:
    name = (filename or "avatar").rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    name = _UNSAFE_NAME_RE.sub("-", name).strip("-.")
    return name[:80] or "avatar"


def avatar_object_path(user_id: str, filename: str | None, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"profiles/{user_id}/{stamp}-{_safe_filename(filename)}"


def _storage_message(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    if message:
        return str(message)
    detail = exc.args[0] if exc.args else None
    if isinstance(detail, dict):
        return str(detail.get("message") or detail.get("error") or "Failed to upload avatar")
    return str(exc) or "Failed to upload avatar"


def public_url(object_path: str) -> str:
    return get_client().storage.from_(settings.avatar_bucket).get_public_url(object_path)


def upload_avatar(
    user_id: str,
    access_token: str | None,
    filename: str | None,
    content: bytes,
    content_type: str | None,
) -> str:
    """Upload to the avatars bucket as the signed-in user and return the public URL."""
    validate_avatar(content_type, len(content))
    object_path = avatar_object_path(user_id, filename)
    bucket = get_client(access_token=access_token).storage.from_(settings.avatar_bucket)
    try:
        bucket.upload(
            object_path,
            content,
            {
                "content-type": content_type or "application/octet-stream",
                "cache-control": "3600",
                "upsert": "true",
            },
        )
    except StorageException as exc:
        raise SupabaseStorageError(_storage_message(exc), getattr(exc, "status", None)) from exc
    except httpx.HTTPError as exc:
        logger.warning(f"Avatar upload failed for {user_id}: {exc}")
        raise SupabaseStorageError("Failed to upload avatar") from exc
    return bucket.get_public_url(object_path)


def get_avatar_url(avatar_path: str | None) -> str:
    """Resolve a stored avatar reference into something an <img> can load."""
    if not avatar_path:
        return DEFAULT_AVATAR
    if avatar_path.startswith("http://") or avatar_path.startswith("https://"):
        return avatar_path
    try:
        return public_url(avatar_path)
    except SupabaseConfigError:
        return DEFAULT_AVATAR
