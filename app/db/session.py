from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

_engine = None


def _describe_database_url() -> str:
    """Return the configured database URL with the password masked."""
    try:
        url = make_url(settings.database_url)
    except Exception as parse_error:  # pragma: no cover
        return f"<unparseable DATABASE_URL: {parse_error}>"
    return url.render_as_string(hide_password=True)


def get_engine():
    """Create the shared engine lazily so imports never touch the network."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url, pool_pre_ping=True)
        try:
            with _engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            # Keep the engine; callers surface the failure on first real use.
            logger.warning(f"Could not connect to database {_describe_database_url()}: {exc}")
    return _engine
