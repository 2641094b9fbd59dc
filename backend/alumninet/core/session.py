from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

import jwt
from starlette.responses import Response

from alumninet.core.auth import UserContext, decode_supabase_jwt, user_from_claims
from alumninet.core.config import settings
from alumninet.services import auth_service
from alumninet.services.auth_service import AuthSession
from alumninet.services.supabase_client import SupabaseConfigError, SupabaseError

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"
CODE_VERIFIER_COOKIE = "sb-code-verifier"


@dataclass
class SessionUpdate:
    """Credential changes to write back on the outgoing response."""

    session: AuthSession | None = None
    clear: bool = False


@dataclass
class SessionState:
    user: UserContext | None = None
    access_token: str | None = None
    update: SessionUpdate | None = None


def _verify(access_token: str) -> UserContext:
    return user_from_claims(decode_supabase_jwt(access_token))


def _refresh(refresh_token: str) -> SessionState:
    try:
        session = auth_service.refresh_session(refresh_token)
        user = _verify(session.access_token)
    except (SupabaseError, SupabaseConfigError, jwt.PyJWTError) as exc:
        logger.info(f"Session refresh failed: {exc}")
        return SessionState(update=SessionUpdate(clear=True))
    return SessionState(
        user=user,
        access_token=session.access_token,
        update=SessionUpdate(session=session),
    )


def resolve_session(cookies: Mapping[str, str]) -> SessionState:
    """Resolve the current user from the auth cookies.

    An expired access token is refreshed with the refresh token; the rotated
    tokens come back in ``SessionState.update`` and must be written to the
    response, otherwise the next request runs with a consumed refresh token.
    Every failure resolves to "no user".
    """
    access_token = cookies.get(ACCESS_COOKIE)
    refresh_token = cookies.get(REFRESH_COOKIE)
    if not access_token and not refresh_token:
        return SessionState()

    if access_token:
        try:
            return SessionState(user=_verify(access_token), access_token=access_token)
        except jwt.ExpiredSignatureError:
            logger.debug("Access token expired, refreshing session")
        except SupabaseConfigError as exc:
            logger.error(f"Cannot verify session: {exc}")
            return SessionState()
        except jwt.PyJWTError as exc:
            logger.info(f"Rejected access token: {exc}")
            return SessionState(update=SessionUpdate(clear=True))

    if not refresh_token:
        return SessionState(update=SessionUpdate(clear=True))
    return _refresh(refresh_token)


def set_session_cookies(response: Response, session: AuthSession) -> None:
    for name, value in ((ACCESS_COOKIE, session.access_token), (REFRESH_COOKIE, session.refresh_token)):
        response.set_cookie(
            name,
            value,
            max_age=settings.session_cookie_max_age,
            path="/",
            secure=settings.cookie_secure,
            httponly=True,
            samesite="lax",
        )


def clear_session_cookies(response: Response) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            secure=settings.cookie_secure,
            httponly=True,
            samesite="lax",
        )


def apply_session_update(response: Response, update: SessionUpdate | None) -> None:
    if update is None:
        return
    if update.session is not None:
        set_session_cookies(response, update.session)
    elif update.clear:
        clear_session_cookies(response)
