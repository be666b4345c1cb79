# portal/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from portal.config import DATABASE_URL, SQL_ECHO


def _engine_kwargs(url: str):
    kwargs = {"echo": SQL_ECHO}
    if url.startswith("sqlite"):
        # handlers and the thread pool share connections
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # models must be imported so their tables register on Base.metadata
    import portal.auth.models  # noqa: F401
    import portal.employees.models  # noqa: F401
    import portal.salary.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
