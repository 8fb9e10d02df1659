"""
tests/test_cache.py — Settings Cache
=====================================
"""

from __future__ import annotations

import json

from introvirght.database.models import Setting
from introvirght.database.seed import DEFAULT_SETTINGS, seed_default_settings
from introvirght.engine.cache import SettingsCache


class TestSettingsCache:
    def test_load_seeded_defaults(self, db_engine):
        seed_default_settings(db_engine)
        cache = SettingsCache(db_engine)
        cache.load_all()

        assert len(cache) == len(DEFAULT_SETTINGS)
        assert cache.get_int("xp.post_create") == 10
        assert cache.get_float("bonus.post_quality_threshold") == 1.5
        assert cache.get_int("streak.grace_periods_allowed") == 3

    def test_seed_is_idempotent(self, db_engine, db_session):
        seed_default_settings(db_engine)
        row = db_session.get(Setting, "xp.like")
        row.value_json = json.dumps(7)
        db_session.commit()

        seed_default_settings(db_engine)
        cache = SettingsCache(db_engine)
        cache.load_all()
        assert cache.get_int("xp.like") == 7

    def test_refresh_picks_up_edits(self, db_engine, db_session):
        seed_default_settings(db_engine)
        cache = SettingsCache(db_engine)
        cache.load_all()

        db_session.get(Setting, "xp.share").value_json = json.dumps(4)
        db_session.commit()
        assert cache.get_int("xp.share") == 1

        cache.refresh()
        assert cache.get_int("xp.share") == 4

    def test_invalid_json_kept_as_text(self, db_engine, db_session):
        db_session.add(Setting(key="broken", value_json="{not json", category="general"))
        db_session.commit()
        cache = SettingsCache(db_engine)
        cache.load_all()
        assert cache.get_setting("broken") == "{not json"
        assert cache.get_int("broken", 9) == 9

    def test_defaults_and_override(self):
        cache = SettingsCache()
        cache.load_all()
        assert len(cache) == 0
        assert cache.get_int("missing", 5) == 5
        assert cache.get_float("missing", 0.5) == 0.5
        assert cache.get_bool("missing", True) is True

        cache.override("engagement.event_window", 25)
        assert cache.get_int("engagement.event_window", 100) == 25
        cache.override("flag", 0)
        assert cache.get_bool("flag", True) is False
