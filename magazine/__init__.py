"""
Magazine — Gamified Social Club Backend
========================================
REST backend for the Magazine / SRT members club: authentication, a social
feed, friendships, and a gamification layer (trophies, Zions, badges,
daily-login streaks, reward redemption) with admin moderation tooling.

Package layout::

    magazine/
    ├── __main__.py        # python -m magazine: init DB, seed, serve
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Economy defaults + leveling formula
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Settings / badge / reward catalogue seeder
    ├── engine/
    │   ├── badges.py      # Badge rule registry (pure)
    │   └── streak.py      # Daily-login streak inference (pure)
    ├── services/
    │   ├── errors.py              # ServiceError hierarchy
    │   ├── auth_service.py        # Register / login / password reset
    │   ├── gamification_service.py # Zion ledger, XP, badges, rewards, streaks
    │   ├── feed_service.py        # Feed listing, likes, comments, stories
    │   ├── post_service.py        # Post creation / deletion / lookup
    │   ├── social_service.py      # Friend graph
    │   ├── notification_service.py # Inbox + fan-out helpers
    │   ├── user_service.py        # Profiles + admin user management
    │   ├── invite_service.py      # Invite request queue
    │   ├── announcement_service.py # Banner campaigns
    │   ├── serializers.py         # ORM → camelCase dicts
    │   ├── admin_service.py       # Audit log, metrics
    │   └── settings_service.py    # Economy knobs
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # /auth router + JWT issuance
        ├── deps.py        # JWT + DB dependencies
        ├── rate_limit.py  # DB-backed sliding-window throttles
        └── routes/        # One router per module
"""

__version__ = "0.1.0"
