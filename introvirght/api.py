"""
introvirght.api — Call contracts for the surrounding application
=================================================================

Two thin façades the post / diary / social / login handlers and the
dashboard call into.  They return plain dicts and lists so the (external)
HTTP layer can serialise them directly.

* :class:`EngagementAPI` — process activity, read profiles.
* :class:`VectorAPI` — diary embedding storage and recall.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

from introvirght.engine.leveling import level_progress
from introvirght.errors import IntrovirghtError

if TYPE_CHECKING:
    from introvirght.database.models import EventType
    from introvirght.services.embedding_queue import EmbeddingQueue
    from introvirght.services.engagement_service import EngagementService
    from introvirght.services.vector_service import VectorEntry, VectorService

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_THRESHOLD = 0.7


class EngagementAPI:
    def __init__(self, service: EngagementService) -> None:
        self._service = service

    def process_event(
        self,
        user_id: str,
        event_type: EventType | str,
        metadata: dict | None = None,
    ) -> dict:
        """``{"rewards": ..., "celebrations": [...]}`` for one activity.

        Raises InvalidEventType / ConcurrentModification.
        """
        return self._service.process_event(user_id, event_type, metadata).to_dict()

    def process_event_safely(
        self,
        user_id: str,
        event_type: EventType | str,
        metadata: dict | None = None,
    ) -> dict | None:
        """Best-effort variant for handlers whose primary write already
        succeeded: logs and returns None instead of raising."""
        try:
            return self.process_event(user_id, event_type, metadata)
        except IntrovirghtError as exc:
            logger.warning(
                "Engagement processing rejected for %s (%s): %s",
                user_id, exc.code, exc.message,
            )
        except Exception:
            logger.exception("Engagement processing failed for %s", user_id)
        return None

    def get_profile(self, user_id: str) -> dict:
        """Raises ProfileNotFound."""
        state = self._service.get_profile(user_id)
        profile = state.to_dict()
        profile["level_progress"] = asdict(level_progress(state.experience))
        return profile

    def get_recent_events(self, user_id: str, limit: int = 50) -> list[dict]:
        return self._service.get_recent_events(user_id, limit)

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        return self._service.get_leaderboard(limit)

    def get_badge_progress(self, user_id: str) -> dict:
        return self._service.get_badge_progress(user_id)


def _entry_dict(entry: VectorEntry) -> dict:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "entry_id": entry.entry_id,
        "content": entry.content,
        "metadata": entry.metadata,
        "created_at": entry.created_at,
        "similarity": entry.similarity,
    }


class VectorAPI:
    def __init__(
        self,
        vectors: VectorService,
        queue: EmbeddingQueue,
        *,
        default_limit: int = 5,
        default_threshold: float = DEFAULT_SEARCH_THRESHOLD,
    ) -> None:
        self._vectors = vectors
        self._queue = queue
        self.default_limit = default_limit
        self.default_threshold = default_threshold

    # Synchronous operations
    def store(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> list[float]:
        return self._vectors.store(entry_id, user_id, text, metadata)

    def update(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> list[float]:
        return self._vectors.update(entry_id, user_id, text, metadata)

    def delete(self, entry_id: str) -> bool:
        return self._vectors.delete(entry_id)

    def search_similar(
        self,
        user_id: str,
        query: str,
        k: int | None = None,
        threshold: float | None = None,
    ) -> list[dict]:
        results = self._vectors.search_similar(
            user_id,
            query,
            self.default_limit if k is None else k,
            self.default_threshold if threshold is None else threshold,
        )
        return [_entry_dict(e) for e in results]

    def get_related_entries(self, user_id: str, entry_id: str, limit: int = 3) -> list[dict]:
        return [_entry_dict(e) for e in self._vectors.get_related_entries(user_id, entry_id, limit)]

    def get_user_insights(self, user_id: str) -> dict:
        return self._vectors.get_user_insights(user_id)

    # Fire-and-forget — never raise into the diary handlers
    def schedule_store(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> bool:
        return self._queue.schedule_store(entry_id, user_id, text, metadata)

    def schedule_update(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> bool:
        return self._queue.schedule_update(entry_id, user_id, text, metadata)

    def schedule_delete(self, entry_id: str) -> bool:
        return self._queue.schedule_delete(entry_id)
