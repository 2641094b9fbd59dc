from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse, Response

from alumninet.core.access import classify_path, evaluate_access
from alumninet.core.auth import UserContext
from alumninet.core.schemas import ProfileOut
from alumninet.core.session import SessionUpdate, apply_session_update, resolve_session
from alumninet.services.profiles import read_profile_snapshot

logger = logging.getLogger(__name__)


@dataclass
class Viewer:
    """Who is asking, resolved once per request and handed to the views."""

    user: UserContext | None = None
    access_token: str | None = None
    profile: ProfileOut | None = None
    profile_loaded: bool = False
    session_update: SessionUpdate | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def moderation_status(self) -> str | None:
        return self.profile.moderation_status if self.profile else None

    def ensure_profile(self) -> ProfileOut | None:
        if self.user is not None and not self.profile_loaded:
            self.profile = read_profile_snapshot(self.user.user_id)
            self.profile_loaded = True
        return self.profile


class GateRedirect(Exception):
    def __init__(self, location: str) -> None:
        super().__init__(location)
        self.location = location


def resolve_viewer(cookies: Mapping[str, str], load_profile: bool) -> Viewer:
    state = resolve_session(cookies)
    viewer = Viewer(user=state.user, access_token=state.access_token, session_update=state.update)
    if load_profile:
        viewer.ensure_profile()
    return viewer


def redirect_response(request: Request, location: str) -> RedirectResponse:
    status_code = 307 if request.method in ("GET", "HEAD") else 303
    return RedirectResponse(location, status_code=status_code)


# HTTP 中间件：页面渲染前的统一门禁
async def gate_middleware(request: Request, call_next) -> Response:
    path = request.url.path
    route = classify_path(path)
    if route.is_asset:
        return await call_next(request)

    if route.requires_auth:
        viewer = await run_in_threadpool(resolve_viewer, request.cookies, route.requires_onboarding)
        request.state.viewer = viewer
        decision = evaluate_access(path, viewer.user, viewer.profile)
        if not decision.allowed:
            logger.info(f"Gate redirect {path} -> {decision.location}")
            response = redirect_response(request, decision.location)
            apply_session_update(response, viewer.session_update)
            return response

    response = await call_next(request)
    viewer = getattr(request.state, "viewer", None)
    if viewer is not None:
        apply_session_update(response, viewer.session_update)
    return response


# 页面级依赖：渲染时再次执行同一判定
def page_viewer(request: Request) -> Viewer:
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        viewer = resolve_viewer(request.cookies, load_profile=True)
        request.state.viewer = viewer
    else:
        viewer.ensure_profile()
    decision = evaluate_access(request.url.path, viewer.user, viewer.profile)
    if not decision.allowed:
        logger.debug(f"Page-level redirect {request.url.path} -> {decision.location}")
        raise GateRedirect(decision.location)
    return viewer


# 公共页面依赖：仅用于导航栏展示，不做拦截
def optional_viewer(request: Request) -> Viewer:
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        viewer = resolve_viewer(request.cookies, load_profile=True)
        request.state.viewer = viewer
    return viewer
