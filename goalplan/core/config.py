from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml
from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str

    rate_convention: str
    max_projection_months: int
    inflation_rate: str


def _deep_get(d: Dict[str, Any], path: str, default=None):
    cur = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def load_settings(config_path: str = "config.yaml") -> Settings:
    """
    Loads config.yaml + overrides from .env/environment variables.
    """
    load_dotenv()  # loads .env into env vars

    cfg: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    # Empty env vars count as "not set" so they never mask config.yaml.
    def _env_or_cfg(key: str, cfg_path: str, default):
        v = os.getenv(key)
        if v is None:
            return _deep_get(cfg, cfg_path, default)
        v = v.strip()
        return _deep_get(cfg, cfg_path, default) if v == "" else v

    env = _env_or_cfg("APP_ENV", "app.env", "dev")
    log_level = _env_or_cfg("LOG_LEVEL", "app.log_level", "INFO")

    rate_convention = str(_env_or_cfg("ENGINE_RATE_CONVENTION", "engine.rate_convention", "geometric")).strip().lower()
    if rate_convention not in ("geometric", "linear"):
        raise ValueError(f"Unsupported rate convention: {rate_convention}")

    max_projection_months = int(_env_or_cfg("ENGINE_MAX_PROJECTION_MONTHS", "engine.max_projection_months", 600))
    # Kept as a string so it converts to Decimal without float drift.
    inflation_rate = str(_env_or_cfg("ENGINE_INFLATION_RATE", "engine.inflation_rate", "0.03"))

    return Settings(
        env=env,
        log_level=log_level,
        rate_convention=rate_convention,
        max_projection_months=max_projection_months,
        inflation_rate=inflation_rate,
    )


# Optional convenience singleton
SETTINGS = load_settings()
