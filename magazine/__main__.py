"""
magazine.__main__ — Entry point for ``python -m magazine``
==========================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Seed default settings, badges and rewards (idempotent).
5. Bootstrap the admin account from ADMIN_EMAIL / ADMIN_PASSWORD.
6. Serve the FastAPI app with uvicorn (blocking).

Run with::

    python -m magazine
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from magazine.config import load_config
from magazine.database.engine import create_db_engine, init_db
from magazine.services.auth_service import ensure_admin_account

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("magazine")


def main() -> None:
    """Bootstrap the database and run the API server."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded — Club: %s", cfg.community_name)

    # 3 + 4. Database and seed data.
    engine = create_db_engine()
    init_db(engine)

    # 5. Admin bootstrap.
    admin_email = os.getenv("ADMIN_EMAIL", "").strip()
    admin_password = os.getenv("ADMIN_PASSWORD", "")
    if admin_email and admin_password:
        ensure_admin_account(engine, email=admin_email, password=admin_password)
    elif admin_email:
        logger.warning("ADMIN_EMAIL is set but ADMIN_PASSWORD is empty; skipping admin bootstrap")
    engine.dispose()

    # 6. Serve.
    logger.info("Starting Magazine API on %s:%d…", cfg.api_host, cfg.api_port)
    uvicorn.run(
        "magazine.api.main:app",
        host=cfg.api_host,
        port=cfg.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
