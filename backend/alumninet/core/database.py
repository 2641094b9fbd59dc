from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from alumninet.core.config import settings


class Base(DeclarativeBase):
    pass


# 生产环境走 DATABASE_URL（Supabase PostgreSQL），本地开发与测试用 SQLite 文件
def _build_engine() -> Engine:
    if settings.database_url:
        return create_engine(settings.database_url, future=True, pool_pre_ping=True)
    settings.ensure_dirs()
    # 请求处理在线程池中执行，SQLite 连接需允许跨线程
    return create_engine(
        f"sqlite:///{settings.sqlite_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )


engine = _build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

# profiles 建表时 PostgreSQL 多 worker 并发 DDL 的互斥锁编号
_SCHEMA_LOCK_ID = 48151623


def init_db() -> None:
    """Create the ``profiles`` table when it does not exist yet."""
    from alumninet.models import profile  # noqa: F401

    if not engine.dialect.name.startswith("postgres"):
        Base.metadata.create_all(bind=engine)
        return

    with engine.connect() as conn:
        conn.execute(text("SELECT pg_advisory_lock(:lock_id)"), {"lock_id": _SCHEMA_LOCK_ID})
        try:
            Base.metadata.create_all(bind=conn)
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": _SCHEMA_LOCK_ID})
        conn.commit()


# 请求之外（中间件门禁等）使用的短生命周期会话
@contextmanager
def session_scope() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# FastAPI 依赖：每个请求一个会话
def get_db() -> Iterator[Session]:
    with session_scope() as db:
        yield db
