import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith('sqlite'):
        return {'connect_args': {'check_same_thread': False}}
    return {'pool_pre_ping': True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_database(bind=None) -> None:
    """Create every table registered on ``Base``."""
    # Importing the models registers their tables on Base.metadata.
    from backend.models import attempt, question, quiz, revoked_session, subject, upvote, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info('Database tables ensured on %s', (bind or engine).url)
