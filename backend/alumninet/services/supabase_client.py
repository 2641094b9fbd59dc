from __future__ import annotations

from supabase import Client, ClientOptions, create_client

from alumninet.core.config import settings


class SupabaseConfigError(RuntimeError):
    """SUPABASE_URL / SUPABASE_ANON_KEY (or a JWT key) is missing."""


class SupabaseError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SupabaseAuthError(SupabaseError):
    pass


class SupabaseStorageError(SupabaseError):
    pass


class RequestStorage:
    """In-memory auth storage scoped to one SDK client.

    The SDK keeps the PKCE code verifier here between ``sign_in_with_oauth``
    and ``exchange_code_for_session``; across requests it travels in a cookie.
    """

    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)

    @property
    def code_verifier(self) -> str | None:
        for key, value in self.items.items():
            if key.endswith("-code-verifier"):
                return value
        return None


def get_client(access_token: str | None = None, storage: RequestStorage | None = None) -> Client:
    """Fresh SDK client for one operation.

    The auth client keeps the signed-in session in memory, so clients are
    never shared between users. With ``access_token`` the storage and
    database calls run as that user (RLS), otherwise as the anonymous role.
    """
    if not settings.supabase_configured:
        raise SupabaseConfigError("SUPABASE_URL / SUPABASE_ANON_KEY not configured.")
    headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
    options = ClientOptions(
        flow_type="pkce",
        auto_refresh_token=False,
        persist_session=False,
        storage=storage or RequestStorage(),
        headers=headers,
    )
    return create_client(settings.supabase_url, settings.supabase_anon_key, options=options)
