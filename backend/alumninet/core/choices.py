from __future__ import annotations

from typing import Tuple


# 学位选项（表单下拉与目录筛选共用）
DEGREE_OPTIONS: Tuple[str, ...] = (
    "B.Tech",
    "B.E.",
    "M.Tech",
    "M.E.",
    "B.Sc",
    "M.Sc",
    "MBA",
    "Ph.D",
)

# 专业方向选项
BRANCH_OPTIONS: Tuple[str, ...] = (
    "CSE",
    "ECE",
    "EEE",
    "IT",
    "Mechanical",
    "Civil",
    "Chemical",
    "AI/ML",
    "Data Science",
    "Other",
)

# 目录筛选中的“不限”标记
ANY = "any"

MODERATION_PENDING = "pending"
MODERATION_APPROVED = "approved"
MODERATION_REJECTED = "rejected"

MODERATION_LABELS: dict[str, str] = {
    MODERATION_PENDING: "Pending",
    MODERATION_APPROVED: "Approved",
    MODERATION_REJECTED: "Rejected",
}


def normalize_choice(value: str | None) -> str:
    """Map empty form values onto the ``any`` sentinel."""
    if not value or not value.strip():
        return ANY
    candidate = value.strip()
    if candidate.lower() == ANY:
        return ANY
    return candidate


def normalize_moderation_status(value: str | None) -> str:
    if value in MODERATION_LABELS:
        return value
    return MODERATION_PENDING
