from __future__ import annotations

import threading

from cachetools import TTLCache
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from alumninet.core.choices import ANY, MODERATION_APPROVED
from alumninet.core.config import settings
from alumninet.core.schemas import DirectoryFilters, DirectoryResult, DirectoryRow
from alumninet.models import Profile


# 进程内记录每个用户最近一次成功的目录结果：容量与过期时间有上限，不跨 worker 共享
LAST_GOOD_RESULTS: TTLCache = TTLCache(
    maxsize=settings.directory_cache_size,
    ttl=settings.directory_cache_ttl,
)
_results_lock = threading.Lock()

# 年份筛选的合法范围（超出范围的数字无法作为数据库整数参数）
MIN_YEAR = 1900
MAX_YEAR = 9999

# 公开目录可见字段（不含邮箱、电话）
PUBLIC_COLUMNS = (
    Profile.id,
    Profile.full_name,
    Profile.graduation_year,
    Profile.degree,
    Profile.branch,
    Profile.company,
    Profile.job_role,
    Profile.location,
    Profile.linkedin,
    Profile.avatar_url,
)

SEARCH_COLUMNS = (Profile.full_name, Profile.company, Profile.job_role, Profile.location)


class DirectoryFilterError(ValueError):
    pass


def parse_year(raw: str) -> int | None:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        year = int(text)
    except ValueError as exc:
        raise DirectoryFilterError("Please enter a valid year") from exc
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise DirectoryFilterError("Please enter a valid year")
    return year


def _public_directory(db: Session):
    return db.query(*PUBLIC_COLUMNS).filter(
        Profile.moderation_status == MODERATION_APPROVED,
        Profile.onboarded.is_(True),
    )


def _apply_filters(query, filters: DirectoryFilters):
    term = filters.q.strip()
    if term:
        query = query.filter(or_(*(column.icontains(term, autoescape=True) for column in SEARCH_COLUMNS)))
    if filters.degree and filters.degree != ANY:
        query = query.filter(Profile.degree == filters.degree)
    if filters.branch and filters.branch != ANY:
        query = query.filter(Profile.branch == filters.branch)
    year = parse_year(filters.year)
    if year is not None:
        query = query.filter(Profile.graduation_year == year)
    return query


def query_directory(db: Session, filters: DirectoryFilters) -> DirectoryResult:
    """Run one directory page query.

    Raises ``DirectoryFilterError`` for unusable filter input before any
    query is issued.
    """
    page_size = settings.directory_page_size
    offset = (filters.page - 1) * page_size
    base = _apply_filters(_public_directory(db), filters)

    # 总数与当前页数据在同一条语句中返回
    rows = (
        base.add_columns(func.count().over().label("total_count"))
        .order_by(Profile.graduation_year.desc(), Profile.id)
        .offset(offset)
        .limit(page_size)
        .all()
    )
    if rows:
        count = int(rows[0].total_count)
    elif filters.page > 1:
        count = base.order_by(None).count()
    else:
        count = 0

    return DirectoryResult(
        rows=[
            DirectoryRow(
                id=row.id,
                full_name=row.full_name,
                graduation_year=row.graduation_year,
                degree=row.degree,
                branch=row.branch,
                company=row.company,
                job_role=row.job_role,
                location=row.location,
                linkedin=row.linkedin,
                avatar_url=row.avatar_url,
            )
            for row in rows
        ],
        count=count,
        page=filters.page,
        page_size=page_size,
    )


def remember_result(user_id: str, result: DirectoryResult) -> None:
    with _results_lock:
        LAST_GOOD_RESULTS[user_id] = result


def last_good_result(user_id: str) -> DirectoryResult:
    with _results_lock:
        cached = LAST_GOOD_RESULTS.get(user_id)
    return cached or DirectoryResult(page_size=settings.directory_page_size)
