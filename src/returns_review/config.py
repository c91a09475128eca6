"""Configuration loading from YAML + environment overrides."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class AppSettings(BaseSettings):
    """App-level settings with env override."""

    model_config = SettingsConfigDict(
        env_prefix="RRV_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    config_path: str = Field(default="config/default.yaml", alias="RRV_CONFIG_PATH")
    log_level: str | None = Field(default=None, alias="RRV_LOG_LEVEL")
    seed: int | None = Field(default=None, alias="RRV_SEED")
    api_host: str | None = Field(default=None, alias="RRV_API_HOST")
    api_port: int | None = Field(default=None, alias="RRV_API_PORT")


def validate_risk_multipliers(config: dict[str, Any]) -> None:
    """Raise ValueError unless 0 < risk.medium_multiplier < risk.high_multiplier."""
    risk = config.get("risk") or {}
    medium = float(risk.get("medium_multiplier", 1.5))
    high = float(risk.get("high_multiplier", 2.5))
    if medium <= 0 or high <= 0:
        raise ValueError("risk multipliers must be positive")
    if medium >= high:
        raise ValueError(
            f"risk.medium_multiplier ({medium}) must be below risk.high_multiplier ({high})"
        )


def get_config(config_path: str | None = None) -> dict[str, Any]:
    """Load merged config from YAML and apply env overrides via AppSettings."""
    settings = AppSettings()
    path = config_path or settings.config_path
    if not Path(path).exists():
        base = _default_config()
    else:
        base = _deep_merge(_default_config(), _load_yaml(path))
        dev_path = Path(path).parent / "dev.yaml"
        if dev_path.exists() and os.environ.get("RRV_ENV") == "dev":
            base = _deep_merge(base, _load_yaml(dev_path))
    if settings.log_level:
        base.setdefault("app", {})["log_level"] = settings.log_level
    if settings.seed is not None:
        base.setdefault("generator", {})["seed"] = settings.seed
    validate_risk_multipliers(base)
    return base


def _default_config() -> dict[str, Any]:
    return {
        "app": {"name": "returns-review", "env": "default", "log_level": "INFO"},
        "generator": {
            "year": 2024,
            "batches_per_distributor": 5,
            "seed": None,
            "spike_probability": 0.1,
            "structuring": {"distributor_id": "D004", "batch_index": 2},
        },
        "risk": {"high_multiplier": 2.5, "medium_multiplier": 1.5},
        "dashboard": {"top_n": 5, "batch_highlight_rate": 0.09},
        "reporting": {"output_dir": "./reports"},
        "api": {"host": "0.0.0.0", "port": 8000},
    }


def get_config_hash(config: dict[str, Any]) -> str:
    """SHA256 of resolved config (canonical key order)."""
    canonical = yaml.dump(config, default_flow_style=False, sort_keys=True, allow_unicode=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
