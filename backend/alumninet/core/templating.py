from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates

from alumninet.core.choices import BRANCH_OPTIONS, DEGREE_OPTIONS
from alumninet.services.avatar_service import get_avatar_url
from alumninet.utils import display
from alumninet.utils.notices import pop_notices

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    degree_options=DEGREE_OPTIONS,
    branch_options=BRANCH_OPTIONS,
    avatar_url=get_avatar_url,
    display_name=display.display_name,
    initials=display.initials,
)
templates.env.filters.update(
    year_suffix=display.year_suffix,
    join_present=display.join_present,
    moderation_label=display.moderation_label,
)


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
    notices: list[dict[str, str]] | None = None,
):
    viewer = getattr(request.state, "viewer", None)
    payload: dict[str, Any] = {
        "viewer": viewer,
        "notices": pop_notices(request) + list(notices or []),
    }
    payload.update(context or {})
    return templates.TemplateResponse(request, name, payload, status_code=status_code)
