"""
Audit database: SQLAlchemy engine and per-request sessions.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from oauth_server.config import AUDIT_DATABASE_URL
from oauth_server.models import Base


def make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url)
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection; a fresh one would open an empty database
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = make_engine(AUDIT_DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency: one session per request."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
