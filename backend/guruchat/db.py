"""
Process-wide database connection state.

The engine is created lazily by the first caller and reused afterwards.
Initialisation is serialised by a lock; if it fails nothing is cached, so
the next caller starts a fresh attempt.
"""
import logging
import threading
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from guruchat.config import settings
from guruchat.utils.retry import retry_database_connect

logger = logging.getLogger(__name__)

Base = declarative_base()


class _ConnectionState:
    def __init__(self):
        self.engine: Optional[Engine] = None
        self.session_factory: Optional[sessionmaker] = None
        self.lock = threading.Lock()


_state = _ConnectionState()


def _build_engine(url: str) -> Engine:
    kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


def _ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def get_engine() -> Engine:
    """Return the shared engine, connecting on first use."""
    engine = _state.engine
    if engine is not None:
        return engine

    with _state.lock:
        if _state.engine is not None:
            return _state.engine

        logger.info("Creating new database connection")
        engine = _build_engine(settings.database_url_fixed)
        try:
            retry_database_connect(settings.DB_CONNECT_ATTEMPTS)(_ping)(engine)
        except Exception:
            engine.dispose()
            logger.error("Database connection failed; next call will retry", exc_info=True)
            raise

        _state.engine = engine
        _state.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connection successful")
        return engine


def get_session_factory() -> sessionmaker:
    """FastAPI dependency: the session factory used by work that outlives a request."""
    get_engine()
    return _state.session_factory


def get_db() -> Generator[Session, None, None]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables."""
    from guruchat import models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=get_engine())


def reset_engine() -> None:
    """Drop the cached engine so the next caller reconnects."""
    with _state.lock:
        if _state.engine is not None:
            _state.engine.dispose()
        _state.engine = None
        _state.session_factory = None
