from alumninet.api.routes.api import router as api_router
from alumninet.api.routes.auth import router as auth_router
from alumninet.api.routes.directory import router as directory_router
from alumninet.api.routes.onboarding import router as onboarding_router
from alumninet.api.routes.pages import router as pages_router

# 对外导出路由
__all__ = ["api_router", "auth_router", "directory_router", "onboarding_router", "pages_router"]
