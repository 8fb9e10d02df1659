"""
introvirght.engine.embedding — Deterministic Text Embedding
============================================================

Feature-hashing embedder: every word (in any script), its character
trigrams, and trigrams of any emoji or symbol runs are hashed with SHA-256
into one of ``dimension`` buckets with a ±1 sign, and the result is
L2-normalised.  Only empty or all-whitespace text embeds to zero.  The
same text always yields the same vector, on any machine, so stored vectors
stay comparable with fresh query vectors.

Swap in a real embedding model by providing another object with the same
``dimension`` attribute and ``embed(text) -> list[float]`` method.
"""

from __future__ import annotations

import hashlib
import re

import numpy as np

DEFAULT_DIMENSION = 384

_TOKEN_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)*")
# Emoji, punctuation and other symbols outside any word
_SYMBOL_RE = re.compile(r"(?:[^\w\s]|_)+")


def normalize(vector) -> np.ndarray:
    """Unit-length copy of *vector*; the zero vector is returned unchanged."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr
    return arr / norm


def cosine_similarity(a, b) -> float:
    """Cosine similarity clamped to ``[0, 1]``; 0 when either side is zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Dimension mismatch: {va.shape} vs {vb.shape}")
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, 0.0, 1.0))


def batch_cosine(query, matrix) -> np.ndarray:
    """Similarity of *query* against every row of *matrix*.

    Rows (or a query) with zero norm score 0.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.size == 0:
        return np.zeros(0)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        raise ValueError(f"Dimension mismatch: {q.shape} vs {m.shape}")
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(m, axis=1)
    denom = row_norms * q_norm
    dots = m @ q
    sims = np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)
    return np.clip(sims, 0.0, 1.0)


# Whole words weigh more than their trigrams
_FEATURE_WEIGHTS = {"3:": 0.5, "s:": 0.25}


def _trigrams(chunk: str) -> list[str]:
    padded = f"#{chunk}#"
    return [padded[i:i + 3] for i in range(len(padded) - 2)]


class HashingEmbedder:
    """Deterministic bag-of-features embedder."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def _features(self, text: str) -> list[str]:
        tokens = _TOKEN_RE.findall(text.lower())
        features = list(tokens)
        for token in tokens:
            features.extend(f"3:{gram}" for gram in _trigrams(token))
        for run in _SYMBOL_RE.findall(text):
            features.extend(f"s:{gram}" for gram in _trigrams(run))
        return features

    def embed(self, text: str) -> list[float]:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for feature in self._features(text or ""):
            digest = hashlib.sha256(feature.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            weight = _FEATURE_WEIGHTS.get(feature[:2], 1.0)
            vector[bucket] += sign * weight
        return normalize(vector).tolist()
