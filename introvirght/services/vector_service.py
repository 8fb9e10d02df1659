"""
introvirght.services.vector_service — Diary Embedding Store & Recall
=====================================================================

Stores one embedding per diary entry in ``diary_vectors`` and answers
nearest-neighbour queries for a single user by cosine similarity.

Recall is an enhancement, never a correctness requirement: storage
failures surface as :class:`VectorStoreUnavailable` from the store layer
and are turned into empty results by the search helpers.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from introvirght.database.models import DiaryVector, utcnow
from introvirght.engine.embedding import DEFAULT_DIMENSION, HashingEmbedder, batch_cosine
from introvirght.engine.text_analysis import (
    calculate_sentiment,
    extract_key_phrases,
    preprocess_query,
    preprocess_text,
    word_count,
)
from introvirght.errors import EmbeddingGenerationFailed, VectorStoreUnavailable

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

CONTEXT_THRESHOLD = 0.6
KEY_PHRASE_TOPICS = 5


@dataclass(frozen=True, slots=True)
class VectorEntry:
    """Detached copy of a ``diary_vectors`` row.

    ``similarity`` is set only on search results.
    """

    id: str
    user_id: str
    entry_id: str
    content: str
    embedding: list[float]
    metadata: dict
    created_at: datetime
    updated_at: datetime | None = None
    similarity: float | None = None

    @classmethod
    def from_row(cls, row: DiaryVector, similarity: float | None = None) -> VectorEntry:
        return cls(
            id=row.id,
            user_id=row.user_id,
            entry_id=row.entry_id,
            content=row.content,
            embedding=list(row.embedding),
            metadata=dict(row.metadata_ or {}),
            created_at=row.created_at,
            updated_at=row.updated_at,
            similarity=similarity,
        )

    def with_similarity(self, similarity: float) -> VectorEntry:
        return VectorEntry(
            id=self.id,
            user_id=self.user_id,
            entry_id=self.entry_id,
            content=self.content,
            embedding=self.embedding,
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=self.updated_at,
            similarity=similarity,
        )


@dataclass
class DiaryContext:
    """Recall bundle handed to the companion."""

    relevant_entries: list[VectorEntry] = field(default_factory=list)
    similarity_scores: list[float] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    time_range: tuple[datetime, datetime] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.relevant_entries


def rank_entries(
    query_vector,
    candidates: list[VectorEntry],
    k: int,
    threshold: float | None = None,
) -> list[VectorEntry]:
    """Top *k* candidates by similarity, most recent first on ties.

    Candidates below *threshold* are dropped; ``None`` keeps everything.
    """
    if k <= 0 or not candidates:
        return []
    sims = batch_cosine(query_vector, np.array([c.embedding for c in candidates]))
    scored = [
        (float(sim), entry)
        for sim, entry in zip(sims, candidates)
        if threshold is None or sim >= threshold
    ]
    scored.sort(key=lambda pair: (pair[0], pair[1].created_at), reverse=True)
    return [entry.with_similarity(sim) for sim, entry in scored[:k]]


def build_metadata(text: str, metadata: dict | None, created_at: datetime) -> dict:
    """Stored metadata: caller topics + key phrases, word count, sentiment, mood."""
    metadata = dict(metadata or {})
    topics = list(metadata.pop("topics", None) or metadata.pop("tags", None) or [])
    for phrase in extract_key_phrases(text, KEY_PHRASE_TOPICS):
        if phrase not in topics:
            topics.append(phrase)
    sentiment = metadata.get("sentiment")
    if sentiment is None:
        sentiment = calculate_sentiment(text)
    return {
        **metadata,
        "mood": metadata.get("mood") or "neutral",
        "topics": topics,
        "sentiment": max(-1.0, min(1.0, float(sentiment))),
        "word_count": word_count(text),
        "created_at": created_at.isoformat(),
    }


class VectorService:
    """Embedding store plus similarity search over one user's entries."""

    def __init__(
        self,
        engine: Engine,
        embedder: HashingEmbedder | None = None,
        *,
        default_limit: int = 5,
    ) -> None:
        self._engine = engine
        self.embedder = embedder or HashingEmbedder(DEFAULT_DIMENSION)
        self.default_limit = default_limit

    @property
    def dimension(self) -> int:
        return self.embedder.dimension

    # -------------------------------------------------------------------
    # Embedding
    # -------------------------------------------------------------------
    def embed(self, text: str, entry_id: str | None = None) -> list[float]:
        try:
            vector = self.embedder.embed(text)
        except Exception as exc:
            raise EmbeddingGenerationFailed(str(exc), entry_id) from exc
        if len(vector) != self.dimension:
            raise EmbeddingGenerationFailed(
                f"expected {self.dimension} dimensions, got {len(vector)}", entry_id,
            )
        return vector

    # -------------------------------------------------------------------
    # Store layer
    # -------------------------------------------------------------------
    def store(
        self,
        entry_id: str,
        user_id: str,
        text: str,
        metadata: dict | None = None,
    ) -> list[float]:
        """Embed *text* and upsert it under *entry_id*; return the vector."""
        content = preprocess_text(text)
        vector = self.embed(content, entry_id)
        try:
            with Session(self._engine) as session:
                row = session.scalar(select(DiaryVector).where(DiaryVector.entry_id == entry_id))
                created_at = row.created_at if row is not None else utcnow()
                meta = build_metadata(content, metadata, created_at)
                if row is None:
                    session.add(DiaryVector(
                        id=str(uuid.uuid4()),
                        user_id=user_id,
                        entry_id=entry_id,
                        content=content,
                        embedding=vector,
                        metadata_=meta,
                        created_at=created_at,
                    ))
                    action = "Stored"
                else:
                    row.user_id = user_id
                    row.content = content
                    row.embedding = vector
                    row.metadata_ = meta
                    row.updated_at = utcnow()
                    action = "Replaced"
                session.commit()
        except SQLAlchemyError as exc:
            raise VectorStoreUnavailable("store") from exc
        logger.info("%s vector for entry %s (user %s)", action, entry_id, user_id)
        return vector

    def update(
        self,
        entry_id: str,
        user_id: str,
        text: str,
        metadata: dict | None = None,
    ) -> list[float]:
        """Re-embed an edited entry (same upsert as :meth:`store`)."""
        return self.store(entry_id, user_id, text, metadata)

    def delete(self, entry_id: str) -> bool:
        """Remove the vector for *entry_id*.  Missing ids are not an error."""
        try:
            with Session(self._engine) as session:
                result = session.execute(
                    sa_delete(DiaryVector).where(DiaryVector.entry_id == entry_id)
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise VectorStoreUnavailable("delete") from exc
        removed = bool(result.rowcount)
        if removed:
            logger.info("Deleted vector for entry %s", entry_id)
        return removed

    def get_entry(self, entry_id: str) -> VectorEntry | None:
        try:
            with Session(self._engine) as session:
                row = session.scalar(select(DiaryVector).where(DiaryVector.entry_id == entry_id))
                return VectorEntry.from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise VectorStoreUnavailable("get_entry") from exc

    def user_entries(self, user_id: str) -> list[VectorEntry]:
        try:
            with Session(self._engine) as session:
                rows = session.scalars(
                    select(DiaryVector)
                    .where(DiaryVector.user_id == user_id)
                    .order_by(DiaryVector.created_at, DiaryVector.id)
                ).all()
                return [VectorEntry.from_row(r) for r in rows]
        except SQLAlchemyError as exc:
            raise VectorStoreUnavailable("user_entries") from exc

    # -------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------
    def search_similar(
        self,
        user_id: str,
        query_text: str,
        k: int | None = None,
        threshold: float | None = None,
    ) -> list[VectorEntry]:
        """The *k* entries of *user_id* most similar to *query_text*.

        Returns ``[]`` when the store is unavailable or the query cannot be
        embedded.
        """
        k = self.default_limit if k is None else k
        query = preprocess_query(query_text)
        if not query:
            return []
        try:
            candidates = self.user_entries(user_id)
            query_vector = self.embed(query)
        except VectorStoreUnavailable:
            logger.exception("Vector store unavailable; returning no results for %s", user_id)
            return []
        except EmbeddingGenerationFailed:
            logger.exception("Query embedding failed; returning no results for %s", user_id)
            return []
        return rank_entries(query_vector, candidates, k, threshold)

    def get_related_entries(
        self, user_id: str, entry_id: str, limit: int = 3,
    ) -> list[VectorEntry]:
        """Neighbours of an existing entry, excluding the entry itself."""
        try:
            target = self.get_entry(entry_id)
            if target is None or target.user_id != user_id:
                return []
            candidates = [e for e in self.user_entries(user_id) if e.entry_id != entry_id]
        except VectorStoreUnavailable:
            logger.exception("Vector store unavailable; no related entries for %s", entry_id)
            return []
        return rank_entries(target.embedding, candidates, limit)

    def get_diary_context(
        self, user_id: str, message: str, limit: int = 3,
    ) -> DiaryContext:
        """Relevant past entries, themes and time range for *message*.

        Degrades to an empty context on any failure.
        """
        try:
            entries = self.search_similar(user_id, message, limit, CONTEXT_THRESHOLD)
        except Exception:
            logger.exception("Failed to build diary context for %s", user_id)
            return DiaryContext()
        if not entries:
            return DiaryContext()

        topic_counts = Counter(t for e in entries for t in e.metadata.get("topics", []))
        dates = sorted(e.created_at for e in entries)
        return DiaryContext(
            relevant_entries=entries,
            similarity_scores=[e.similarity for e in entries],
            themes=[t for t, _ in topic_counts.most_common(5)],
            time_range=(dates[0], dates[-1]),
        )

    def get_user_insights(self, user_id: str) -> dict:
        entries = self.user_entries(user_id)
        if not entries:
            return {
                "total_entries": 0,
                "average_word_count": 0.0,
                "common_topics": [],
                "mood_distribution": {},
                "average_sentiment": 0.0,
            }
        total = len(entries)
        topic_counts = Counter(t for e in entries for t in e.metadata.get("topics", []))
        moods = Counter(e.metadata.get("mood") or "unknown" for e in entries)
        return {
            "total_entries": total,
            "average_word_count": sum(e.metadata.get("word_count", 0) for e in entries) / total,
            "common_topics": [t for t, _ in topic_counts.most_common(10)],
            "mood_distribution": dict(moods),
            "average_sentiment": sum(e.metadata.get("sentiment", 0.0) for e in entries) / total,
        }
