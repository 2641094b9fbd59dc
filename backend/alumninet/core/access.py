"""Route access tiers and the gate decision.

``evaluate_access`` is the only place the auth -> onboarding -> approval
ordering lives. The HTTP middleware and the page-level dependency both call
it, so the two layers always agree on the outcome and redirect targets.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol
from urllib.parse import urlencode

LOGIN_PATH = "/auth/login"
ONBOARDING_PATH = "/onboarding"
DASHBOARD_PATH = "/dashboard"

# Static files and non-page endpoints: no session lookup at all
ASSET_PREFIXES: tuple[str, ...] = (
    "/static",
    "/images",
    "/favicon",
    "/api",
    "/robots.txt",
    "/sitemap.xml",
    "/health",
)

PUBLIC_ROUTES = frozenset(
    {
        "/",
        "/auth/login",
        "/auth/signup",
        "/auth/callback",
        "/auth/logout",
    }
)
PUBLIC_PREFIXES: tuple[str, ...] = ("/auth/oauth",)

AUTH_ONLY: tuple[str, ...] = ("/dashboard", "/onboarding", "/directory")
ONBOARDING_REQUIRED: tuple[str, ...] = ("/dashboard", "/directory")
APPROVAL_REQUIRED: tuple[str, ...] = ("/directory",)


class ProfileState(Protocol):
    onboarded: bool
    moderation_status: str


def matches_base(path: str, bases: Iterable[str]) -> bool:
    for base in bases:
        if path == base or path.startswith(base + "/"):
            return True
    return False


@dataclass(frozen=True)
class RouteAccess:
    kind: str  # "asset" | "public" | "protected"
    requires_auth: bool = False
    requires_onboarding: bool = False
    requires_approval: bool = False

    @property
    def is_asset(self) -> bool:
        return self.kind == "asset"

    @property
    def is_public(self) -> bool:
        return self.kind == "public"


def classify_path(path: str) -> RouteAccess:
    if path.startswith(ASSET_PREFIXES):
        return RouteAccess(kind="asset")
    if path in PUBLIC_ROUTES or matches_base(path, PUBLIC_PREFIXES):
        return RouteAccess(kind="public")
    return RouteAccess(
        kind="protected",
        requires_auth=matches_base(path, AUTH_ONLY),
        requires_onboarding=matches_base(path, ONBOARDING_REQUIRED),
        requires_approval=matches_base(path, APPROVAL_REQUIRED),
    )


@dataclass(frozen=True)
class GateDecision:
    redirect_path: str | None = None
    params: dict[str, str] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.redirect_path is None

    @property
    def location(self) -> str | None:
        if self.redirect_path is None:
            return None
        if not self.params:
            return self.redirect_path
        return f"{self.redirect_path}?{urlencode(self.params)}"


ALLOW = GateDecision()


def login_redirect(path: str) -> GateDecision:
    # Only the path is carried over; query strings are dropped.
    return GateDecision(LOGIN_PATH, {"redirect": path})


def evaluate_access(path: str, user: object | None, profile: ProfileState | None) -> GateDecision:
    """Decide whether ``path`` may render for ``user`` with ``profile``.

    ``profile`` is ``None`` when no row exists or it could not be read;
    both cases count as "not onboarded".
    """
    route = classify_path(path)
    if not route.requires_auth:
        return ALLOW
    if user is None:
        return login_redirect(path)

    if route.requires_onboarding:
        onboarded = bool(profile is not None and profile.onboarded)
        if not onboarded and path != ONBOARDING_PATH:
            return GateDecision(ONBOARDING_PATH)

        if route.requires_approval:
            approved = profile is not None and profile.moderation_status == "approved"
            if not approved:
                return GateDecision(DASHBOARD_PATH)

    return ALLOW


def safe_redirect_target(value: str | None, default: str = DASHBOARD_PATH) -> str:
    """Accept only same-site relative paths as post-login destinations."""
    if not value:
        return default
    candidate = value.strip()
    if not candidate.startswith("/") or candidate.startswith("//") or "\\" in candidate:
        return default
    return candidate
