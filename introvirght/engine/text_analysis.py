"""
introvirght.engine.text_analysis — Diary Text Heuristics
=========================================================

Lightweight, dependency-free helpers used to enrich stored diary vectors
and companion replies: key-phrase extraction, a lexicon sentiment score,
and text / query normalisation.
"""

from __future__ import annotations

import re
from collections import Counter

MAX_TEXT_LENGTH = 8000
MAX_QUERY_LENGTH = 1000

STOP_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "up", "about", "into", "through", "during", "before",
    "after", "above", "below", "between", "among", "this", "that", "these",
    "those", "i", "me", "my", "myself", "we", "our", "ours", "ourselves", "you",
    "your", "yours", "yourself", "yourselves", "he", "him", "his", "himself",
    "she", "her", "hers", "herself", "it", "its", "itself", "they", "them",
    "their", "theirs", "themselves", "what", "which", "who", "whom", "whose",
    "am", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "having", "do", "does", "did", "doing", "will", "would", "could",
    "should", "may", "might", "must", "can", "shall", "just", "very", "really",
    "today", "then", "than", "there", "here", "when", "while",
})

POSITIVE_WORDS: frozenset[str] = frozenset({
    "happy", "joy", "love", "wonderful", "amazing", "great", "good",
    "excellent", "fantastic", "beautiful", "peaceful", "calm", "grateful",
    "thankful", "blessed", "excited", "hopeful", "optimistic", "confident",
    "proud", "satisfied", "content",
})

NEGATIVE_WORDS: frozenset[str] = frozenset({
    "sad", "angry", "hate", "terrible", "awful", "bad", "horrible",
    "disgusting", "depressed", "anxious", "worried", "stressed", "frustrated",
    "disappointed", "lonely", "scared", "afraid", "nervous", "upset",
    "annoyed", "irritated",
})

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_TRAILING_PUNCT_RE = re.compile(r"[?!.]+$")
_QUERY_PREFIX_RE = re.compile(r"^(find|show|search|get)\s+", re.IGNORECASE)


def _words(text: str) -> list[str]:
    return _NON_WORD_RE.sub("", text.lower()).split()


def preprocess_text(text: str | None) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()[:MAX_TEXT_LENGTH]


def preprocess_query(query: str | None) -> str:
    if not query:
        return ""
    processed = query.strip().lower()
    processed = _TRAILING_PUNCT_RE.sub("", processed)
    processed = _QUERY_PREFIX_RE.sub("", processed)
    return processed[:MAX_QUERY_LENGTH]


def extract_key_phrases(text: str | None, limit: int = 10) -> list[str]:
    """Most frequent non-stop-words longer than three characters.

    Ties keep first-occurrence order.
    """
    if not text:
        return []
    words = [w for w in _words(text) if len(w) > 3 and w not in STOP_WORDS]
    return [word for word, _ in Counter(words).most_common(limit)]


def calculate_sentiment(text: str | None) -> float:
    """``(pos - neg) / (pos + neg)`` over the lexicons; 0.0 with no hits."""
    if not text:
        return 0.0
    words = _words(text)
    positive = sum(1 for w in words if w in POSITIVE_WORDS)
    negative = sum(1 for w in words if w in NEGATIVE_WORDS)
    total = positive + negative
    if total == 0:
        return 0.0
    return (positive - negative) / total


def word_count(text: str | None) -> int:
    return len(text.split()) if text else 0
