from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from alumninet.core.choices import normalize_choice
from alumninet.core.database import get_db
from alumninet.core.gate import Viewer, page_viewer
from alumninet.core.schemas import MAX_DIRECTORY_PAGE, DirectoryFilters
from alumninet.core.templating import render
from alumninet.services.directory import (
    DirectoryFilterError,
    last_good_result,
    query_directory,
    remember_result,
)
from alumninet.utils.notices import notice

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_page(raw: str | None) -> int:
    try:
        page = int(raw or 1)
    except ValueError:
        return 1
    return min(max(1, page), MAX_DIRECTORY_PAGE)


def _page_link(filters: DirectoryFilters, page: int) -> str:
    params = {"page": page}
    if filters.q:
        params["q"] = filters.q
    if filters.degree != "any":
        params["degree"] = filters.degree
    if filters.branch != "any":
        params["branch"] = filters.branch
    if filters.year:
        params["year"] = filters.year
    return f"/directory?{urlencode(params)}"


# 校友目录：搜索、筛选、分页
@router.get("/directory")
def directory_page(
    request: Request,
    q: str = "",
    degree: str = "",
    branch: str = "",
    year: str = "",
    page: str | None = None,
    viewer: Viewer = Depends(page_viewer),
    db: Session = Depends(get_db),
):
    filters = DirectoryFilters(
        q=q.strip(),
        degree=normalize_choice(degree),
        branch=normalize_choice(branch),
        year=year.strip(),
        page=_parse_page(page),
    )
    user_id = viewer.user.user_id
    notices = []
    try:
        result = query_directory(db, filters)
        remember_result(user_id, result)
    except DirectoryFilterError as exc:
        notices.append(notice("error", str(exc)))
        result = last_good_result(user_id)
    except SQLAlchemyError:
        logger.exception("Directory query failed")
        notices.append(notice("error", "Failed to load directory"))
        result = last_good_result(user_id)

    return render(
        request,
        "directory.html",
        {
            "filters": filters,
            "result": result,
            "prev_url": _page_link(filters, result.page - 1) if result.has_previous else None,
            "next_url": _page_link(filters, result.page + 1) if result.has_next else None,
        },
        notices=notices,
    )
