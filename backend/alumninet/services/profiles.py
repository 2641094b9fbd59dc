from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from alumninet.core.choices import normalize_moderation_status
from alumninet.core.database import session_scope
from alumninet.core.schemas import ProfileOut
from alumninet.models import Profile

logger = logging.getLogger(__name__)


def to_profile_out(row: Profile) -> ProfileOut:
    return ProfileOut(
        user_id=row.id,
        email=row.email,
        full_name=row.full_name,
        phone=row.phone,
        degree=row.degree,
        branch=row.branch,
        graduation_year=row.graduation_year,
        company=row.company,
        job_role=row.job_role,
        location=row.location,
        linkedin=row.linkedin,
        avatar_url=row.avatar_url,
        onboarded=bool(row.onboarded),
        moderation_status=normalize_moderation_status(row.moderation_status),
        moderation_reason=row.moderation_reason,
    )


def load_profile(db: Session, user_id: str) -> ProfileOut | None:
    row = db.get(Profile, user_id)
    if not row:
        return None
    return to_profile_out(row)


def profile_exists(db: Session, user_id: str) -> bool:
    return db.query(Profile.id).filter(Profile.id == user_id).first() is not None


# 门禁使用：读取失败按“未完成引导”处理
def read_profile_snapshot(user_id: str) -> ProfileOut | None:
    try:
        with session_scope() as db:
            return load_profile(db, user_id)
    except SQLAlchemyError:
        logger.exception(f"Profile read failed for {user_id}; treating as not onboarded")
        return None
