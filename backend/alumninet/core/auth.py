from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Header, HTTPException
from jwt import PyJWKClient

from alumninet.core.config import settings
from alumninet.services.supabase_client import SupabaseConfigError


@dataclass
class UserContext:
    user_id: str
    email: str | None
    claims: dict[str, Any]


_jwks_client: PyJWKClient | None = None
_jwks_url: str | None = None


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client, _jwks_url
    jwks_url = settings.resolved_supabase_jwks_url
    if not jwks_url:
        raise SupabaseConfigError("SUPABASE_JWKS_URL not configured.")
    if _jwks_client is None or _jwks_url != jwks_url:
        _jwks_client = PyJWKClient(jwks_url)
        _jwks_url = jwks_url
    return _jwks_client


def _resolve_signing_key(token: str) -> tuple[Any, str]:
    header = jwt.get_unverified_header(token)
    alg = header.get("alg")
    if not alg:
        raise jwt.InvalidTokenError("Invalid JWT header.")
    if alg.lower() == "none":
        raise jwt.InvalidAlgorithmError("Invalid JWT algorithm.")
    if alg.startswith("HS"):
        if not settings.supabase_jwt_secret:
            raise SupabaseConfigError("SUPABASE_JWT_SECRET not configured for HS* tokens.")
        return settings.supabase_jwt_secret, alg
    jwks_client = _get_jwks_client()
    signing_key = jwks_client.get_signing_key_from_jwt(token).key
    return signing_key, alg


def decode_supabase_jwt(token: str) -> dict[str, Any]:
    """Verify a Supabase access token and return its claims.

    Raises ``jwt.PyJWTError`` subclasses as-is (callers distinguish
    ``ExpiredSignatureError`` to trigger a refresh) and
    ``SupabaseConfigError`` when no verification key is configured.
    """
    signing_key, alg = _resolve_signing_key(token)
    issuer = settings.resolved_supabase_jwt_issuer
    if not issuer:
        raise SupabaseConfigError("SUPABASE_JWT_ISSUER not configured.")
    return jwt.decode(
        token,
        signing_key,
        algorithms=[alg],
        audience=settings.supabase_jwt_audience,
        issuer=issuer,
    )


def user_from_claims(claims: dict[str, Any]) -> UserContext:
    user_id = claims.get("sub")
    if not user_id:
        raise jwt.InvalidTokenError("Invalid JWT payload.")
    return UserContext(user_id=user_id, email=claims.get("email"), claims=claims)


def verify_supabase_jwt(token: str) -> dict[str, Any]:
    try:
        return decode_supabase_jwt(token)
    except SupabaseConfigError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid JWT.") from exc


def get_current_user(authorization: str = Header(default="")) -> UserContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Authorization header.")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing JWT token.")

    claims = verify_supabase_jwt(token)
    try:
        return user_from_claims(claims)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid JWT payload.") from exc

