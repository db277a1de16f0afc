"""Bootstrap logic for wiring the review service."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from srs_engine.app.settings import AppSettings
from srs_engine.curator import PracticeCurator, build_openai_client
from srs_engine.db import get_session_factory, run_migrations_if_needed
from srs_engine.db.store import SqlReviewStore
from srs_engine.review import ReviewService


LOGGER = logging.getLogger(__name__)


def configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_review_service(
    settings: AppSettings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> ReviewService:
    """Create a review service backed by the configured database."""
    if session_factory is None:
        session_factory = get_session_factory()

    curator: Optional[PracticeCurator] = None
    if settings.openai_api_key:
        curator = PracticeCurator(
            build_openai_client(settings.openai_api_key),
            settings.curator_model,
            max_cards=settings.curator_max_cards,
        )
    else:
        LOGGER.debug("OPENAI_API_KEY is not set; free practice needs explicit card ids.")

    return ReviewService(
        SqlReviewStore(session_factory),
        new_card_limit=settings.new_cards_per_session,
        hard_policy=settings.hard_rating_policy,
        curator=curator,
    )


def bootstrap(settings: AppSettings) -> ReviewService:
    """Configure logging, apply migrations and return a ready review service."""
    configure_logging(settings.log_level)
    LOGGER.info("Starting %s in %s mode.", settings.app_name, settings.app_env)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    return build_review_service(settings)
