"""Database initialization utilities."""

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from shop_boost.db import models  # noqa: F401 - ensure model metadata is registered
from shop_boost.db.session import Base, engine as default_engine

logger = logging.getLogger(__name__)


def init_db(bind: Engine | None = None) -> None:
    """Create any missing tables."""
    bind = bind or default_engine
    try:
        existing = set(inspect(bind).get_table_names())
        Base.metadata.create_all(bind=bind)
        created = sorted(set(Base.metadata.tables) - existing)
        if created:
            logger.info("Created tables: %s", ", ".join(created))
    except SQLAlchemyError:
        logger.exception("Database initialization failed.")
        raise
