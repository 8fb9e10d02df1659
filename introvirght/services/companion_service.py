"""
introvirght.services.companion_service — Offline Diary Companion
=================================================================

Rule-based supportive replies grounded in the user's own diary.  Context
comes from :meth:`VectorService.get_diary_context`; no language model is
called, so replies are deterministic for a given diary and message.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from introvirght.engine.text_analysis import calculate_sentiment

if TYPE_CHECKING:
    from introvirght.services.vector_service import VectorEntry, VectorService

logger = logging.getLogger(__name__)

GREETINGS = frozenset({"hello", "hi", "hey"})
MOOD_WORDS = frozenset({"mood", "moods", "feeling", "feelings", "feel"})

GREETING_REPLY = (
    "Hello! I'm here to help you reflect on your thoughts and feelings. "
    "I've been reading your diary entries and I'm here to support your journey "
    "of self-discovery. What's on your mind today?"
)
MOOD_REPLY = (
    "I'd love to help you explore your feelings. Your diary shows you experience "
    "a range of emotions, which is completely natural. What specific mood or "
    "feeling would you like to talk about?"
)
DEFAULT_REPLY = (
    "Thank you for sharing that with me. I'm here to listen and help you reflect "
    "on your thoughts and experiences. Your diary shows you're on a meaningful "
    "journey of self-discovery. What would you like to explore or talk about?"
)

_WORD_RE = re.compile(r"[a-z']+")


@dataclass
class CompanionReply:
    message: str
    related_entries: list[VectorEntry] = field(default_factory=list)
    sentiment: float = 0.0

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "related_entries": [
                {
                    "entry_id": e.entry_id,
                    "date": e.created_at.date().isoformat(),
                    "mood": e.metadata.get("mood", "neutral"),
                    "similarity": e.similarity,
                    "excerpt": e.content[:200],
                }
                for e in self.related_entries
            ],
            "sentiment": self.sentiment,
        }


def compose_reply(message: str, related: list[VectorEntry]) -> str:
    words = set(_WORD_RE.findall(message.lower()))

    if words & GREETINGS:
        return GREETING_REPLY

    if words & MOOD_WORDS:
        if related:
            moods = ", ".join(e.metadata.get("mood", "neutral") for e in related)
            return (
                f"I notice you've written about feeling {moods} in similar situations. "
                "How are you feeling about this right now?"
            )
        return MOOD_REPLY

    if related:
        date = related[0].created_at.date().isoformat()
        return (
            f"I found some related entries in your diary from {date}. This seems to "
            "be something you've reflected on before. What aspects of this would you "
            "like to explore further?"
        )

    return DEFAULT_REPLY


class CompanionService:
    def __init__(self, vectors: VectorService, *, context_size: int = 3) -> None:
        self._vectors = vectors
        self.context_size = context_size

    def reply(self, user_id: str, message: str) -> CompanionReply:
        context = self._vectors.get_diary_context(user_id, message, self.context_size)
        logger.debug(
            "Companion context for %s: %d entries, themes=%s",
            user_id, len(context.relevant_entries), context.themes,
        )
        return CompanionReply(
            message=compose_reply(message, context.relevant_entries),
            related_entries=context.relevant_entries,
            sentiment=calculate_sentiment(message),
        )
