from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from appraisal.core.config import settings


def _build_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

    # SQLite ignores ON DELETE rules unless asked per connection
    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    One session per request. Services own commit and rollback; this only closes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create every table. Runs once from the application lifespan."""
    # Models register themselves on Base.metadata when imported
    from appraisal import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
