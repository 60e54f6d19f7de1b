import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from goal_coach.config import get_settings

logger = logging.getLogger("database")

Base = declarative_base()


def make_engine(url: str) -> Engine:
    """Create a sync engine; SQLite connections may be shared with scheduler threads."""
    connect_args = {}
    if make_url(url).drivername.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(get_settings().database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_database_dsn(hide_password: bool = True) -> str:
    return engine.url.render_as_string(hide_password=hide_password)


def init_db(bind: Engine = engine) -> None:
    """Create the key-value table if it does not exist yet."""
    from goal_coach import models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(bind=bind)
    logger.info("Database initialized: %s", bind.url.render_as_string(hide_password=True))
