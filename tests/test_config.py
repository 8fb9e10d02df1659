"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

import pytest

from introvirght.config import load_config

MINIMAL = """\
app_name: Introvirght
embedding_dimension: 128
search_limit: 4
search_threshold: 0.65
companion_context_size: 2
"""


class TestLoadConfig:
    def test_required_keys_and_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL, encoding="utf-8")

        cfg = load_config(path)
        assert cfg.app_name == "Introvirght"
        assert cfg.embedding_dimension == 128
        assert cfg.search_limit == 4
        assert cfg.search_threshold == pytest.approx(0.65)
        assert cfg.companion_context_size == 2
        assert cfg.event_window == 100
        assert cfg.embedding_max_attempts == 3
        assert cfg.embedding_retry_backoff == pytest.approx(1.0)

    def test_optional_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            MINIMAL + "event_window: 40\nembedding_max_attempts: 5\nembedding_retry_backoff: 0.5\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.event_window == 40
        assert cfg.embedding_max_attempts == 5
        assert cfg.embedding_retry_backoff == pytest.approx(0.5)

    def test_event_window_capped(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL + "event_window: 500\n", encoding="utf-8")
        assert load_config(path).event_window == 100

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("app_name: Introvirght\n", encoding="utf-8")
        with pytest.raises(KeyError):
            load_config(path)

    def test_config_is_frozen(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL, encoding="utf-8")
        cfg = load_config(path)
        with pytest.raises(AttributeError):
            cfg.search_limit = 10
