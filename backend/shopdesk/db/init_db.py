"""Create all tables. Run on app startup."""
import logging

from sqlalchemy.engine import Engine

from shopdesk.db.base import Base
from shopdesk.db.session import engine as default_engine
from shopdesk.models import item, sale, purchase  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> None:
    bind = engine or default_engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database schema ready ({len(Base.metadata.tables)} tables)")
