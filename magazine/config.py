"""
magazine.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for **infrastructure-only** settings (branding,
listen address, token lifetime, dev toggles).  Economy tuning values
(Zion amounts, highlight cost, daily-login table, leveling curve) live in
the ``settings`` database table, editable from the admin endpoints.

Usage::

    from magazine.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.community_name)    # "Clube Magazine"
    print(cfg.jwt_expiry_days)   # 7
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object: infrastructure and identity only.
# Gameplay tuning lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MagazineConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # HTTP
    api_host: str
    api_port: int

    # Auth
    jwt_expiry_days: int = 7
    # Echo password-reset tokens in the API response (no mail transport yet)
    expose_reset_tokens: bool = False

    # Extra CORS allowance, e.g. preview deployments (r"https://.*\.vercel\.app")
    cors_origin_regex: str | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> MagazineConfig:
    """Read *path* and return a :class:`MagazineConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return MagazineConfig(
        community_name=raw["community_name"],
        api_host=str(raw.get("api_host", "0.0.0.0")),
        api_port=int(raw["api_port"]),
        jwt_expiry_days=int(raw.get("jwt_expiry_days", 7)),
        expose_reset_tokens=bool(raw.get("expose_reset_tokens", False)),
        cors_origin_regex=raw.get("cors_origin_regex") or None,
    )
