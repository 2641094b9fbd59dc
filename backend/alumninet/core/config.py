from __future__ import annotations

import os
from pydantic_settings import BaseSettings


# 应用配置：统一管理环境变量与默认值
class Settings(BaseSettings):
    # 运行环境标识（便于日志、调试、区分开发/生产）
    app_env: str = "dev"
    # FastAPI 根路径（反向代理或子路径部署时使用）
    root_path: str = ""
    # 站点对外访问地址（OAuth 回调 redirect_to 使用）
    site_url: str = "http://localhost:8000"
    # 日志级别
    log_level: str = "INFO"
    # 项目运行时数据根目录（本地 SQLite 等）
    data_dir: str = "data"
    # SQLite 数据库文件路径（默认本地文件）
    sqlite_path: str = "data/app.db"
    # 可选数据库连接串（优先用于 Supabase PostgreSQL）
    database_url: str | None = None

    # 通知消息 Cookie 的签名密钥（生产环境必须替换）
    session_secret: str = "dev-session-secret-change-me"
    # 登录 Cookie 是否仅通过 HTTPS 发送
    cookie_secure: bool = False
    # 登录 Cookie 有效期（秒）
    session_cookie_max_age: int = 60 * 60 * 24 * 30

    # Supabase 项目地址（认证与存储均需要）
    supabase_url: str = ""
    # Supabase 匿名访问 Key（公开 Key）
    supabase_anon_key: str | None = None
    # Supabase JWKS 地址（用于 JWT 验证，留空则由 supabase_url 推导）
    supabase_jwks_url: str | None = None
    # Supabase JWT Secret（对称签名时使用，可与 JWKS 二选一）
    supabase_jwt_secret: str | None = None
    # JWT 验证时的 audience（Supabase 默认是 authenticated）
    supabase_jwt_audience: str = "authenticated"
    # JWT 验证时的 issuer（留空则由 supabase_url 推导）
    supabase_jwt_issuer: str | None = None
    # 允许的 OAuth 登录提供方（逗号分隔）
    oauth_providers: str = "google"

    # 头像存储桶名称
    avatar_bucket: str = "avatars"
    # 头像大小上限（字节）
    avatar_max_bytes: int = 5 * 1024 * 1024

    # 校友目录每页条数
    directory_page_size: int = 20
    # 目录“最近一次成功结果”缓存：最多保留的用户数与过期秒数
    directory_cache_size: int = 1024
    directory_cache_ttl: int = 600
    # 重新提交资料时是否总是重置为待审核（包括已通过的用户）
    reset_moderation_on_resubmit: bool = True

    # Pydantic Settings 行为配置
    class Config:
        env_file = (
            os.getenv("APP_ENV_FILE") or "config/.env",
            "backend/config/.env",
            ".env",
        )
        case_sensitive = False
        extra = "ignore" if os.getenv("APP_ENV", "dev").lower() == "dev" else "forbid"

    # 解析允许的 OAuth 提供方列表
    @property
    def oauth_provider_list(self) -> list[str]:
        return [item.strip().lower() for item in self.oauth_providers.split(",") if item.strip()]

    # Supabase 基础配置是否齐全
    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    # Supabase JWKS 地址（优先使用配置值）
    @property
    def resolved_supabase_jwks_url(self) -> str | None:
        if self.supabase_jwks_url:
            return self.supabase_jwks_url
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"

    # Supabase JWT issuer（优先使用配置值）
    @property
    def resolved_supabase_jwt_issuer(self) -> str | None:
        if self.supabase_jwt_issuer:
            return self.supabase_jwt_issuer
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    # 确保运行时数据目录存在（启动时创建必要目录）
    def ensure_dirs(self) -> None:
        for path in (self.data_dir, os.path.dirname(self.sqlite_path)):
            if path:
                os.makedirs(path, exist_ok=True)


# 全局配置实例
settings = Settings()
