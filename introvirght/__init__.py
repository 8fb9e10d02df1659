"""
Introvirght — Engagement & Diary Recall Core
=============================================
Scores journaling activity (streaks, levels, badges, achievements) and
recalls semantically related diary entries for the AI companion.
The HTTP layer, authentication and CRUD plumbing live elsewhere and call
into this package through :mod:`introvirght.api`.

Package layout::

    introvirght/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level table, titles, rarity presentation
    ├── errors.py          # Exception taxonomy
    ├── app.py             # Composition root + logging setup
    ├── api.py             # EngagementAPI / VectorAPI facades
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models
    │   └── seed.py        # Default settings seeder
    ├── engine/
    │   ├── events.py      # ActivityEvent dataclass + base XP table
    │   ├── state.py       # EngagementState and its value objects
    │   ├── streaks.py     # Streak state machine
    │   ├── leveling.py    # XP → level, feature unlocks
    │   ├── badges.py      # Badge catalog + evaluator
    │   ├── achievements.py # Achievement catalog + progress tracking
    │   ├── reward.py      # XP reward calculation + celebrations
    │   ├── embedding.py   # Deterministic text embedding + cosine math
    │   ├── text_analysis.py # Key phrases, sentiment, preprocessing
    │   └── cache.py       # In-memory settings cache
    └── services/
        ├── engagement_service.py  # Transactional event processing
        ├── vector_service.py      # Diary vector store + similarity search
        ├── embedding_queue.py     # Background embedding jobs with retry
        └── companion_service.py   # Offline diary companion replies
"""

__version__ = "0.1.0"
