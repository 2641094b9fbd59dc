from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from alumninet.core.auth import UserContext, get_current_user
from alumninet.core.choices import ANY, normalize_choice
from alumninet.core.database import get_db
from alumninet.core.schemas import MAX_DIRECTORY_PAGE, DirectoryFilters, DirectoryResult, ProfileOut
from alumninet.services.directory import DirectoryFilterError, query_directory
from alumninet.services.profiles import load_profile

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=ProfileOut | None)
def get_me(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ProfileOut | None:
    return load_profile(db, user.user_id)


@router.get("/directory", response_model=DirectoryResult)
def list_directory(
    q: str = "",
    degree: str = ANY,
    branch: str = ANY,
    year: str = "",
    page: int = Query(1, ge=1, le=MAX_DIRECTORY_PAGE),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> DirectoryResult:
    try:
        profile = load_profile(db, user.user_id)
    except SQLAlchemyError as exc:
        logger.exception(f"Profile read failed for {user.user_id}")
        raise HTTPException(status_code=503, detail="Profile store unavailable.") from exc
    if not profile or not profile.onboarded:
        raise HTTPException(status_code=403, detail="Onboarding not completed.")
    if not profile.is_approved:
        raise HTTPException(status_code=403, detail="Profile not approved.")

    filters = DirectoryFilters(
        q=q.strip(),
        degree=normalize_choice(degree),
        branch=normalize_choice(branch),
        year=year.strip(),
        page=page,
    )
    try:
        return query_directory(db, filters)
    except DirectoryFilterError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
