from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from tournament_engine.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across request threads
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=settings.SQL_ECHO,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Create all tables. Models must be imported so they register with Base."""
    import tournament_engine.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
