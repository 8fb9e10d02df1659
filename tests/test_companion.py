"""
tests/test_companion.py — Diary Companion Replies
==================================================
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

from introvirght.services.companion_service import (
    DEFAULT_REPLY,
    GREETING_REPLY,
    MOOD_REPLY,
    CompanionService,
    compose_reply,
)
from introvirght.services.vector_service import DiaryContext, VectorEntry


def _entry(entry_id: str, mood: str = "calm", day: int = 3) -> VectorEntry:
    return VectorEntry(
        id=f"v-{entry_id}",
        user_id="alice",
        entry_id=entry_id,
        content=f"Entry {entry_id} about a quiet evening",
        embedding=[1.0, 0.0],
        metadata={"mood": mood},
        created_at=datetime(2024, 5, day, 21, 0),
        similarity=0.8,
    )


class TestComposeReply:
    def test_greeting_wins(self):
        assert compose_reply("Hey, how do I feel today?", [_entry("e1")]) == GREETING_REPLY

    def test_greeting_needs_whole_word(self):
        assert compose_reply("This is something else", []) == DEFAULT_REPLY

    def test_mood_with_entries_lists_moods(self):
        reply = compose_reply(
            "My mood is low",
            [_entry("e1", "anxious"), _entry("e2", "tired")],
        )
        assert "feeling anxious, tired" in reply

    def test_mood_without_entries(self):
        assert compose_reply("Tell me about my feelings", []) == MOOD_REPLY

    def test_pattern_mentions_first_entry_date(self):
        reply = compose_reply("Work was long again", [_entry("e1", day=7), _entry("e2", day=2)])
        assert "2024-05-07" in reply

    def test_default(self):
        assert compose_reply("Work was long again", []) == DEFAULT_REPLY


class TestCompanionService:
    def test_reply_uses_diary_context(self):
        vectors = MagicMock()
        entries = [_entry("e1")]
        vectors.get_diary_context.return_value = DiaryContext(
            relevant_entries=entries,
            similarity_scores=[0.8],
            themes=["evening"],
        )
        service = CompanionService(vectors, context_size=2)

        reply = service.reply("alice", "What a wonderful quiet evening")

        vectors.get_diary_context.assert_called_once_with(
            "alice", "What a wonderful quiet evening", 2,
        )
        assert reply.related_entries == entries
        assert "2024-05-03" in reply.message
        assert reply.sentiment > 0

    def test_empty_context_to_dict(self):
        vectors = MagicMock()
        vectors.get_diary_context.return_value = DiaryContext()
        reply = CompanionService(vectors).reply("alice", "hello")

        payload = reply.to_dict()
        assert payload["message"] == GREETING_REPLY
        assert payload["related_entries"] == []
        assert payload["sentiment"] == 0.0

    def test_to_dict_entry_shape(self):
        vectors = MagicMock()
        vectors.get_diary_context.return_value = DiaryContext(relevant_entries=[_entry("e1")])
        payload = CompanionService(vectors).reply("alice", "ok").to_dict()

        (item,) = payload["related_entries"]
        assert item["entry_id"] == "e1"
        assert item["date"] == "2024-05-03"
        assert item["mood"] == "calm"
        assert item["similarity"] == 0.8
