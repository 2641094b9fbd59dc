from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from alumninet.core.gate import Viewer, optional_viewer, page_viewer
from alumninet.core.templating import render
from alumninet.utils.display import greeting_name


router = APIRouter()

BENEFITS = (
    ("Networking", "Reconnect with batchmates and build lasting connections."),
    ("Mentorship", "Guide juniors or find mentors to navigate your career."),
    ("Jobs", "Discover and share job opportunities within the network."),
    ("Perks", "Get exclusive alumni perks and campus privileges."),
    ("Community", "Stay updated with alumni events and reunions."),
    ("Nostalgia", "Cherish your campus memories with photo galleries."),
)


# 首页（公开）
@router.get("/")
def home(request: Request, viewer: Viewer = Depends(optional_viewer)):
    return render(request, "home.html", {"benefits": BENEFITS})


# 个人主页：资料摘要 + 审核状态
@router.get("/dashboard")
def dashboard(request: Request, viewer: Viewer = Depends(page_viewer)):
    profile = viewer.profile
    return render(
        request,
        "dashboard.html",
        {
            "profile": profile,
            "name": greeting_name(profile.full_name, viewer.user.email),
            "email": profile.email or viewer.user.email,
            "moderation_status": profile.moderation_status,
        },
    )
