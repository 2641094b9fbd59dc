from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from alumninet.api.routes import (
    api_router,
    auth_router,
    directory_router,
    onboarding_router,
    pages_router,
)
from alumninet.core.config import settings
from alumninet.core.database import init_db
from alumninet.core.gate import GateRedirect, gate_middleware, redirect_response


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

# 应用入口：初始化 FastAPI 实例
app = FastAPI(title="AlumniNet", root_path=settings.root_path or "")

# 访问门禁（登录 / 引导 / 审核），位于会话中间件内层
app.middleware("http")(gate_middleware)
# 通知消息存放在签名 Cookie 中
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie="alumninet-notices",
    same_site="lax",
    https_only=settings.cookie_secure,
)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# 注册页面与接口路由
app.include_router(pages_router, tags=["pages"])
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(onboarding_router, tags=["onboarding"])
app.include_router(directory_router, tags=["directory"])
app.include_router(api_router, prefix="/api", tags=["api"])


# 页面级门禁未通过时转为重定向
@app.exception_handler(GateRedirect)
async def gate_redirect_handler(request: Request, exc: GateRedirect):
    return redirect_response(request, exc.location)


@app.get("/health")
def health_check():
    return {"status": "ok"}


# 启动事件：创建数据库表结构并检查必需配置
@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if not settings.supabase_configured:
        logger.warning("SUPABASE_URL / SUPABASE_ANON_KEY not configured; sign-in, OAuth and avatar uploads are unavailable.")
    if settings.app_env.lower() != "dev" and settings.session_secret == "dev-session-secret-change-me":
        logger.warning("SESSION_SECRET is using the development default.")
