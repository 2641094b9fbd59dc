from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import RedirectResponse

from alumninet.core.access import DASHBOARD_PATH
from alumninet.core.config import settings
from alumninet.core.database import get_db
from alumninet.core.gate import Viewer, page_viewer
from alumninet.core.schemas import OnboardingForm, form_errors, max_graduation_year
from alumninet.core.templating import render
from alumninet.services.avatar_service import AvatarRejected, upload_avatar, validate_avatar
from alumninet.services.onboarding import initial_values, missing_required, submit_onboarding
from alumninet.services.supabase_client import SupabaseConfigError, SupabaseError
from alumninet.utils.notices import notice, push_notice

logger = logging.getLogger(__name__)

router = APIRouter()


def _form_context(viewer: Viewer, values: dict[str, Any], errors: dict[str, str] | None = None) -> dict:
    return {
        "values": values,
        "errors": errors or {},
        "email": viewer.user.email or "",
        "missing": missing_required(values),
        "max_year": max_graduation_year(),
        "avatar_max_bytes": settings.avatar_max_bytes,
    }


def _store_avatar(viewer: Viewer, avatar: UploadFile, current: str) -> tuple[str, dict | None]:
    """Upload a new avatar; on any failure keep ``current`` and return a notice."""
    try:
        validate_avatar(avatar.content_type, avatar.size or 0)
        content = avatar.file.read()
        url = upload_avatar(
            viewer.user.user_id,
            viewer.access_token,
            avatar.filename,
            content,
            avatar.content_type,
        )
    except AvatarRejected as exc:
        return current, notice("error", str(exc))
    except (SupabaseError, SupabaseConfigError) as exc:
        logger.warning(f"Avatar upload failed for {viewer.user.user_id}: {exc}")
        return current, notice("error", getattr(exc, "message", None) or "Failed to upload avatar")
    return url, None


# 引导页：首次填写或编辑资料
@router.get("/onboarding")
def onboarding_page(request: Request, viewer: Viewer = Depends(page_viewer)):
    return render(request, "onboarding.html", _form_context(viewer, initial_values(viewer.profile)))


@router.post("/onboarding")
def submit(
    request: Request,
    full_name: str = Form(""),
    phone: str = Form(""),
    degree: str = Form(""),
    branch: str = Form(""),
    graduation_year: str = Form(""),
    company: str = Form(""),
    job_role: str = Form(""),
    location: str = Form(""),
    linkedin: str = Form(""),
    consent_terms: bool = Form(False),
    consent_privacy: bool = Form(False),
    remove_avatar: bool = Form(False),
    avatar: UploadFile | None = File(None),
    viewer: Viewer = Depends(page_viewer),
    db: Session = Depends(get_db),
):
    current_avatar = "" if remove_avatar else ((viewer.profile.avatar_url if viewer.profile else None) or "")
    values: dict[str, Any] = {
        "full_name": full_name,
        "phone": phone,
        "degree": degree,
        "branch": branch,
        "graduation_year": graduation_year,
        "company": company,
        "job_role": job_role,
        "location": location,
        "linkedin": linkedin,
        "avatar_url": current_avatar,
        "consent_terms": consent_terms,
        "consent_privacy": consent_privacy,
    }

    try:
        form = OnboardingForm(**values)
    except ValidationError as exc:
        return render(
            request,
            "onboarding.html",
            _form_context(viewer, values, form_errors(exc)),
            status_code=422,
            notices=[notice("error", "Please complete the required fields.")],
        )

    avatar_url = current_avatar
    if avatar is not None and avatar.filename:
        avatar_url, upload_notice = _store_avatar(viewer, avatar, current_avatar)
        if upload_notice:
            push_notice(request, upload_notice["level"], upload_notice["message"])

    try:
        profile = submit_onboarding(db, viewer.user, form, avatar_url=avatar_url)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Onboarding upsert failed for {viewer.user.user_id}")
        return render(
            request,
            "onboarding.html",
            _form_context(viewer, values),
            status_code=500,
            notices=[notice("error", "Could not save your profile. Please try again.")],
        )

    if profile.moderation_status == "pending":
        push_notice(request, "success", "Onboarding complete! Your profile is pending approval.")
    else:
        push_notice(request, "success", "Profile updated.")
    return RedirectResponse(DASHBOARD_PATH, status_code=303)
