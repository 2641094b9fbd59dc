from __future__ import annotations

from starlette.requests import Request

_SESSION_KEY = "notices"


def push_notice(request: Request, level: str, message: str) -> None:
    """Queue a one-shot notification for the next rendered page."""
    notices = list(request.session.get(_SESSION_KEY, []))
    notices.append({"level": level, "message": message})
    request.session[_SESSION_KEY] = notices


def pop_notices(request: Request) -> list[dict[str, str]]:
    return list(request.session.pop(_SESSION_KEY, []))


def notice(level: str, message: str) -> dict[str, str]:
    return {"level": level, "message": message}
