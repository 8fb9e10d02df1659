"""
tests/test_embedding.py — Hashing Embedder & Vector Math
=========================================================
"""

from __future__ import annotations

import numpy as np
import pytest

from introvirght.engine.embedding import (
    HashingEmbedder,
    batch_cosine,
    cosine_similarity,
    normalize,
)


class TestHashingEmbedder:
    def test_fixed_dimension(self):
        assert len(HashingEmbedder(384).embed("a quiet morning walk")) == 384
        assert len(HashingEmbedder(64).embed("a quiet morning walk")) == 64

    def test_deterministic(self):
        a = HashingEmbedder().embed("Grateful for my friends today")
        b = HashingEmbedder().embed("Grateful for my friends today")
        assert a == b

    def test_unit_norm(self):
        vec = HashingEmbedder().embed("Feeling calm after meditation")
        assert np.linalg.norm(vec) == pytest.approx(1.0)

    def test_empty_text_is_zero_vector(self):
        vec = HashingEmbedder(16).embed("")
        assert vec == [0.0] * 16

    def test_shared_words_score_higher(self):
        emb = HashingEmbedder()
        base = emb.embed("long walk in the park with my dog")
        close = emb.embed("walk in the park with the dog")
        far = emb.embed("quarterly tax paperwork deadline")
        assert cosine_similarity(base, close) > cosine_similarity(base, far)

    def test_rejects_bad_dimension(self):
        with pytest.raises(ValueError):
            HashingEmbedder(0)


class TestCosine:
    def test_self_similarity_is_one(self):
        vec = HashingEmbedder().embed("rainy afternoon thoughts")
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_zero_vector_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_clamped_to_unit_interval(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_batch_matches_pairwise(self):
        q = [1.0, 1.0, 0.0]
        m = [[1.0, 1.0, 0.0], [0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [-1.0, -1.0, 0.0]]
        sims = batch_cosine(q, m)
        assert sims == pytest.approx([cosine_similarity(q, row) for row in m])
        assert ((sims >= 0) & (sims <= 1)).all()

    def test_batch_empty(self):
        assert batch_cosine([1.0], np.zeros((0, 1))).size == 0

    def test_normalize_zero_unchanged(self):
        assert normalize([0.0, 0.0]).tolist() == [0.0, 0.0]


class TestAnyScript:
    @pytest.mark.parametrize(
        "text",
        [
            "Сегодня был прекрасный день",
            "今日はとても良い一日でした",
            "Καλημέρα κόσμε",
            "اليوم كان يوما جميلا",
            "🙂🌧️☕",
            "!!!",
        ],
    )
    def test_non_latin_text_is_unit_norm(self, text):
        vec = HashingEmbedder().embed(text)
        assert np.linalg.norm(vec) == pytest.approx(1.0)

    def test_whitespace_only_is_zero(self):
        assert HashingEmbedder(8).embed(" \n\t ") == [0.0] * 8

    def test_cyrillic_shared_words_score_higher(self):
        emb = HashingEmbedder()
        base = emb.embed("Сегодня был прекрасный день в парке")
        close = emb.embed("прекрасный день в парке")
        far = emb.embed("今日はとても良い一日でした")
        assert cosine_similarity(base, close) > cosine_similarity(base, far)
