"""
introvirght.app — Composition root
===================================

Wiring:
1. Load .env (``DATABASE_URL``).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Build and warm the SettingsCache (gameplay tuning from the DB).
5. Build the services and the two call-contract façades.

The HTTP layer owns the event loop; it should call
``services.embedding_queue.start(loop)`` once the loop is running and
``stop()`` on shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from introvirght.api import EngagementAPI, VectorAPI
from introvirght.config import IntrovirghtConfig, load_config
from introvirght.database.engine import create_db_engine, init_db
from introvirght.engine.cache import SettingsCache
from introvirght.engine.embedding import HashingEmbedder
from introvirght.services.companion_service import CompanionService
from introvirght.services.embedding_queue import EmbeddingQueue
from introvirght.services.engagement_service import EngagementService
from introvirght.services.vector_service import VectorService

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = IntrovirghtConfig(
    app_name="Introvirght",
    embedding_dimension=384,
    search_limit=5,
    search_threshold=0.7,
    companion_context_size=3,
)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


@dataclass
class Services:
    """Everything the surrounding application needs, wired together."""

    config: IntrovirghtConfig
    cache: SettingsCache
    engagement: EngagementService
    vectors: VectorService
    embedding_queue: EmbeddingQueue
    companion: CompanionService
    engagement_api: EngagementAPI
    vector_api: VectorAPI


def build_services(
    engine: Engine,
    cfg: IntrovirghtConfig | None = None,
    *,
    cache: SettingsCache | None = None,
) -> Services:
    cfg = cfg or DEFAULT_CONFIG
    if cache is None:
        cache = SettingsCache(engine)
        cache.load_all()
    if cfg.event_window:
        cache.override("engagement.event_window", cfg.event_window)

    engagement = EngagementService(engine, cache)
    vectors = VectorService(
        engine,
        HashingEmbedder(cfg.embedding_dimension),
        default_limit=cfg.search_limit,
    )
    queue = EmbeddingQueue(
        engine,
        vectors,
        max_attempts=cfg.embedding_max_attempts,
        backoff=cfg.embedding_retry_backoff,
    )
    companion = CompanionService(vectors, context_size=cfg.companion_context_size)

    return Services(
        config=cfg,
        cache=cache,
        engagement=engagement,
        vectors=vectors,
        embedding_queue=queue,
        companion=companion,
        engagement_api=EngagementAPI(engagement),
        vector_api=VectorAPI(
            vectors,
            queue,
            default_limit=cfg.search_limit,
            default_threshold=cfg.search_threshold,
        ),
    )


def bootstrap(config_path: str | Path = "config.yaml") -> Services:
    """Full startup from ``.env`` + ``config.yaml``."""
    configure_logging()
    load_dotenv()

    cfg = load_config(config_path)
    engine = create_db_engine()
    init_db(engine)

    services = build_services(engine, cfg)
    logger.info(
        "%s ready: %d settings cached, %d-dim embeddings",
        cfg.app_name, len(services.cache), cfg.embedding_dimension,
    )
    return services
