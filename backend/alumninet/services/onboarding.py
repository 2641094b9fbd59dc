from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.orm import Session

from alumninet.core.auth import UserContext
from alumninet.core.choices import ANY, MODERATION_APPROVED, MODERATION_PENDING
from alumninet.core.config import settings
from alumninet.core.schemas import OnboardingForm, ProfileOut
from alumninet.models import Profile
from alumninet.models.profile import utcnow
from alumninet.services.profiles import to_profile_out

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "degree", "branch", "graduation_year", "consent_terms", "consent_privacy")

_CHECKED = {"on", "true", "1", "yes"}


def _is_checked(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _CHECKED


def missing_required(values: Mapping[str, Any]) -> list[str]:
    """Required inputs still missing; the submit control stays disabled while non-empty."""
    missing: list[str] = []
    for name in ("full_name", "degree", "branch"):
        text = str(values.get(name) or "").strip()
        if not text or text.lower() == ANY:
            missing.append(name)
    year = str(values.get("graduation_year") or "").strip()
    try:
        int(year)
    except ValueError:
        missing.append("graduation_year")
    for name in ("consent_terms", "consent_privacy"):
        if not _is_checked(values.get(name)):
            missing.append(name)
    return missing


def initial_values(profile: ProfileOut | None) -> dict[str, Any]:
    """Form defaults: the stored profile when editing, blanks otherwise."""
    values: dict[str, Any] = {
        "full_name": "",
        "phone": "",
        "degree": "",
        "branch": "",
        "graduation_year": datetime.now(timezone.utc).year,
        "company": "",
        "job_role": "",
        "location": "",
        "linkedin": "",
        "avatar_url": "",
        "consent_terms": False,
        "consent_privacy": False,
    }
    if profile is None:
        return values
    for key in values:
        stored = getattr(profile, key, None)
        if stored not in (None, ""):
            values[key] = stored
    return values


def _next_moderation_status(row: Profile | None) -> str:
    if row is None or settings.reset_moderation_on_resubmit:
        return MODERATION_PENDING
    if row.onboarded and row.moderation_status == MODERATION_APPROVED:
        return MODERATION_APPROVED
    return MODERATION_PENDING


def submit_onboarding(
    db: Session,
    user: UserContext,
    form: OnboardingForm,
    avatar_url: str | None = None,
) -> ProfileOut:
    """Upsert the caller's profile from a validated onboarding form.

    Every submitted field overwrites the stored value. ``onboarded`` becomes
    true; the moderation status goes back to pending unless
    ``reset_moderation_on_resubmit`` is off and the profile was approved.
    """
    now = utcnow()
    row = db.get(Profile, user.user_id)
    status = _next_moderation_status(row)
    if row is None:
        row = Profile(id=user.user_id, created_at=now)
        db.add(row)

    row.email = user.email
    row.full_name = form.full_name
    row.phone = form.phone or None
    row.degree = form.degree
    row.branch = form.branch
    row.graduation_year = form.graduation_year
    row.company = form.company or None
    row.job_role = form.job_role or None
    row.location = form.location or None
    row.linkedin = form.linkedin or None
    row.avatar_url = (avatar_url if avatar_url is not None else form.avatar_url) or None
    row.onboarded = True
    if status == MODERATION_PENDING:
        row.moderation_reason = None
    row.moderation_status = status
    row.updated_at = now

    db.commit()
    db.refresh(row)
    logger.info(f"Onboarding submitted for {user.user_id} (status={row.moderation_status})")
    return to_profile_out(row)
