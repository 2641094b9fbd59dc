from __future__ import annotations

import logging
from urllib.parse import urlencode

import jwt
from fastapi import APIRouter, Depends, Form, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import RedirectResponse

from alumninet.core.access import DASHBOARD_PATH, LOGIN_PATH, ONBOARDING_PATH, safe_redirect_target
from alumninet.core.auth import decode_supabase_jwt, user_from_claims
from alumninet.core.config import settings
from alumninet.core.database import get_db
from alumninet.core.schemas import LoginForm, SignUpForm, form_errors
from alumninet.core.session import (
    ACCESS_COOKIE,
    CODE_VERIFIER_COOKIE,
    clear_session_cookies,
    set_session_cookies,
)
from alumninet.core.templating import render
from alumninet.services import auth_service
from alumninet.services.profiles import profile_exists
from alumninet.services.supabase_client import SupabaseConfigError, SupabaseError
from alumninet.utils.notices import notice, push_notice

logger = logging.getLogger(__name__)

router = APIRouter()

_VERIFIER_MAX_AGE = 600


def _auth_error_message(exc: Exception) -> str:
    if isinstance(exc, SupabaseError):
        return exc.message
    if isinstance(exc, SupabaseConfigError):
        return "Sign-in is not available right now."
    return "Unexpected error"


def _login_error_redirect(message: str) -> RedirectResponse:
    response = RedirectResponse(f"{LOGIN_PATH}?{urlencode({'error': message})}")
    response.delete_cookie(CODE_VERIFIER_COOKIE, path="/")
    return response


@router.get("/login")
def login_page(request: Request, redirect: str | None = None, error: str | None = None):
    notices = [notice("error", error)] if error else []
    return render(
        request,
        "auth/login.html",
        {"redirect": safe_redirect_target(redirect), "email": "", "oauth_providers": settings.oauth_provider_list},
        notices=notices,
    )


@router.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect: str = Form(""),
):
    target = safe_redirect_target(redirect)
    context = {"redirect": target, "email": email, "oauth_providers": settings.oauth_provider_list}
    try:
        form = LoginForm(email=email, password=password)
    except ValidationError as exc:
        return render(request, "auth/login.html", {**context, "errors": form_errors(exc)}, status_code=400)

    try:
        session = auth_service.sign_in_with_password(form.email, form.password)
    except (SupabaseError, SupabaseConfigError) as exc:
        logger.info(f"Password sign-in failed: {exc}")
        return render(
            request,
            "auth/login.html",
            context,
            status_code=400,
            notices=[notice("error", _auth_error_message(exc))],
        )

    response = RedirectResponse(target, status_code=303)
    set_session_cookies(response, session)
    return response


@router.get("/signup")
def signup_page(request: Request):
    return render(request, "auth/signup.html", {"email": "", "oauth_providers": settings.oauth_provider_list})


@router.post("/signup")
def signup(request: Request, email: str = Form(""), password: str = Form("")):
    context = {"email": email, "oauth_providers": settings.oauth_provider_list}
    try:
        form = SignUpForm(email=email, password=password)
    except ValidationError as exc:
        return render(request, "auth/signup.html", {**context, "errors": form_errors(exc)}, status_code=400)

    try:
        result = auth_service.sign_up(form.email, form.password)
    except (SupabaseError, SupabaseConfigError) as exc:
        logger.info(f"Sign-up failed: {exc}")
        return render(
            request,
            "auth/signup.html",
            context,
            status_code=400,
            notices=[notice("error", _auth_error_message(exc))],
        )

    if result.needs_confirmation:
        push_notice(request, "success", "Check your email to confirm sign up")
        return RedirectResponse(
            f"{LOGIN_PATH}?{urlencode({'redirect': ONBOARDING_PATH})}", status_code=303
        )

    push_notice(request, "success", "Account created. Tell us about yourself.")
    response = RedirectResponse(ONBOARDING_PATH, status_code=303)
    set_session_cookies(response, result.session)
    return response


def _callback_url() -> str:
    return f"{settings.site_url.rstrip('/')}/auth/callback"


# OAuth 登录入口：SDK 生成 PKCE 参数，verifier 暂存在 Cookie 中
@router.get("/oauth/{provider}")
def oauth_start(provider: str):
    provider = provider.lower()
    if provider not in settings.oauth_provider_list:
        raise HTTPException(status_code=404, detail="Unknown OAuth provider.")

    try:
        start = auth_service.start_oauth(provider, _callback_url())
    except (SupabaseError, SupabaseConfigError) as exc:
        logger.warning(f"OAuth start failed for {provider}: {exc}")
        return _login_error_redirect(_auth_error_message(exc))

    response = RedirectResponse(start.url)
    response.set_cookie(
        CODE_VERIFIER_COOKIE,
        start.code_verifier,
        max_age=_VERIFIER_MAX_AGE,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return response


# OAuth 回调：用 code 换取会话，新用户进入引导页
@router.get("/callback")
def oauth_callback(
    request: Request,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    db: Session = Depends(get_db),
):
    if error:
        return _login_error_redirect(error_description or "OAuth failed")
    if not code:
        return _login_error_redirect("Missing OAuth code")

    verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
    if not verifier:
        return _login_error_redirect("Missing OAuth code verifier")

    try:
        session = auth_service.exchange_code_for_session(code, verifier, _callback_url())
    except (SupabaseError, SupabaseConfigError) as exc:
        logger.info(f"OAuth code exchange failed: {exc}")
        return _login_error_redirect(_auth_error_message(exc))

    try:
        user = user_from_claims(decode_supabase_jwt(session.access_token))
    except (jwt.PyJWTError, SupabaseConfigError) as exc:
        logger.info(f"OAuth session rejected: {exc}")
        return _login_error_redirect("No authenticated user")

    # 资料表读取失败时按“无资料”处理，进入引导流程
    try:
        has_profile = profile_exists(db, user.user_id)
    except SQLAlchemyError:
        logger.exception(f"Profile lookup failed for {user.user_id}")
        has_profile = False

    response = RedirectResponse(DASHBOARD_PATH if has_profile else ONBOARDING_PATH)
    set_session_cookies(response, session)
    response.delete_cookie(CODE_VERIFIER_COOKIE, path="/")
    return response


@router.post("/logout")
def logout(request: Request):
    access_token = request.cookies.get(ACCESS_COOKIE)
    if access_token:
        try:
            auth_service.sign_out(access_token)
        except (SupabaseError, SupabaseConfigError) as exc:
            logger.warning(f"Provider sign-out failed: {exc}")

    response = RedirectResponse("/", status_code=303)
    clear_session_cookies(response)
    return response
