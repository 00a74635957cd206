"""Composition root for ReadRank.

Builds the rating service with explicitly constructed collaborators instead
of module-level clients, so callers and tests choose what gets injected.
"""

import logging
from typing import Any, Dict, Optional

from readrank.clients import BookAPIClient, RatingStore
from readrank.config import Settings
from readrank.logging_config import setup_logging, silence_noisy_loggers
from readrank.models import setup_database
from readrank.rating.sampler import make_picker
from readrank.services import RatingService

logger = logging.getLogger(__name__)


def bootstrap(settings: Optional[Settings] = None, db_tables: Optional[Dict[str, Any]] = None) -> RatingService:
    """Configure logging, open the database and return a wired service.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        db_tables: Pre-built tables (e.g. an in-memory database). When
            omitted, ``settings.db_path`` is opened and migrated.
    """
    settings = settings or Settings.from_env()
    setup_logging("readrank", log_file=settings.log_file)
    silence_noisy_loggers()

    if db_tables is None:
        db_tables = setup_database(settings.db_path, settings.migrations_dir)

    def picker_factory():
        return make_picker(settings.picker, settings.random_seed)

    service = RatingService(
        RatingStore(db_tables),
        picker_factory=picker_factory,
        catalog=BookAPIClient(api_key=settings.google_books_api_key),
    )
    logger.info(f"ReadRank rating service ready (picker={settings.picker}, db={settings.db_path})")
    return service
