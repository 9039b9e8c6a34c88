from typing import Callable, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from quickpos.config import settings

# Base for ALL models
Base = declarative_base()


# -----------------------
# SQLAlchemy Engine
# -----------------------
def create_db_engine(url: Optional[str] = None) -> Engine:
    url = (url or settings.DATABASE_URL).strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")

    kwargs = {"future": True, "echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_pre_ping=True, pool_recycle=300)
    return create_engine(url, **kwargs)


def create_session_factory(url: Optional[str] = None, create_tables: bool = True) -> Callable[[], Session]:
    """Session factory bound to a fresh engine; creates the ledger tables by default."""
    engine = create_db_engine(url)
    if create_tables:
        # models must be imported before create_all
        from quickpos import models  # noqa: F401
        Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

