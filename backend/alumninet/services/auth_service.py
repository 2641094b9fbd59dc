from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from supabase import AuthError

from alumninet.services.supabase_client import RequestStorage, SupabaseAuthError, get_client

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: str | None = None


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    expires_in: int | None
    user: AuthUser | None = None


@dataclass
class SignUpResult:
    user: AuthUser | None
    session: AuthSession | None

    @property
    def needs_confirmation(self) -> bool:
        return self.session is None


@dataclass
class OAuthStart:
    url: str
    code_verifier: str


@contextmanager
def _auth_errors() -> Iterator[None]:
    # SDK 异常统一转换为 SupabaseAuthError，路由层只处理一种类型
    try:
        yield
    except AuthError as exc:
        message = getattr(exc, "message", None) or str(exc) or "Authentication failed."
        raise SupabaseAuthError(message, getattr(exc, "status", None)) from exc


def _to_user(user: Any) -> AuthUser | None:
    if user is None or not getattr(user, "id", None):
        return None
    return AuthUser(id=str(user.id), email=getattr(user, "email", None))


def _to_session(session: Any) -> AuthSession:
    if session is None or not session.access_token or not session.refresh_token:
        raise SupabaseAuthError("Auth server returned no session.")
    expires_in = getattr(session, "expires_in", None)
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=int(expires_in) if expires_in is not None else None,
        user=_to_user(getattr(session, "user", None)),
    )


# 邮箱 + 密码登录
def sign_in_with_password(email: str, password: str) -> AuthSession:
    with _auth_errors():
        response = get_client().auth.sign_in_with_password({"email": email, "password": password})
    return _to_session(response.session)


# 注册：项目开启邮箱确认时不会返回 session
def sign_up(email: str, password: str) -> SignUpResult:
    with _auth_errors():
        response = get_client().auth.sign_up({"email": email, "password": password})
    if response.session is not None:
        session = _to_session(response.session)
        return SignUpResult(user=session.user or _to_user(response.user), session=session)
    return SignUpResult(user=_to_user(response.user), session=None)


# 使用 refresh_token 换取新的会话（refresh_token 会轮换）
def refresh_session(refresh_token: str) -> AuthSession:
    with _auth_errors():
        response = get_client().auth.refresh_session(refresh_token)
    return _to_session(response.session)


# OAuth PKCE 第一步：SDK 生成 code_verifier 与授权地址
def start_oauth(provider: str, redirect_to: str) -> OAuthStart:
    storage = RequestStorage()
    with _auth_errors():
        response = get_client(storage=storage).auth.sign_in_with_oauth(
            {"provider": provider, "options": {"redirect_to": redirect_to}}
        )
    verifier = storage.code_verifier
    if not verifier:
        raise SupabaseAuthError("OAuth flow did not produce a code verifier.")
    return OAuthStart(url=response.url, code_verifier=verifier)


# OAuth PKCE 第二步：用授权码换取会话
def exchange_code_for_session(auth_code: str, code_verifier: str, redirect_to: str | None = None) -> AuthSession:
    params = {"auth_code": auth_code, "code_verifier": code_verifier}
    if redirect_to:
        params["redirect_to"] = redirect_to
    with _auth_errors():
        response = get_client().auth.exchange_code_for_session(params)
    return _to_session(response.session)


def sign_out(access_token: str) -> None:
    try:
        get_client().auth.admin.sign_out(access_token)
    except AuthError as exc:
        # 401/404 means the session is already gone
        if getattr(exc, "status", None) in (401, 404):
            return
        raise SupabaseAuthError(getattr(exc, "message", None) or str(exc), getattr(exc, "status", None)) from exc
