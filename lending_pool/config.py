"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .units import MAX_LIQUIDATION_THRESHOLD, MAX_LTV_RATIO, MAX_RESERVE_FACTOR

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "json")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolConfig:
    admin: str = ""
    pool_id: str = "lending-pool"
    bridge_authority: str = ""


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "memory"
    path: str = "state.json"


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OracleConfig:
    max_price_age_seconds: int | None = None
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class AssetSettings:
    symbol: str = ""
    ltv_ratio: int = 0
    liquidation_threshold: int = 0
    reserve_factor: int = 0


@dataclass(frozen=True)
class AppConfig:
    pool: PoolConfig = field(default_factory=PoolConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    assets: tuple[AssetSettings, ...] = ()


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_pool(raw: dict[str, Any]) -> PoolConfig:
    return PoolConfig(
        admin=raw.get("admin", ""),
        pool_id=raw.get("pool_id", "lending-pool"),
        bridge_authority=raw.get("bridge_authority", "") or "",
    )


def _build_storage(raw: dict[str, Any]) -> StorageConfig:
    return StorageConfig(
        backend=raw.get("backend", "memory"),
        path=str(raw.get("path", "state.json")),
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {})
    max_age = raw.get("max_price_age_seconds")
    return OracleConfig(
        max_price_age_seconds=int(max_age) if max_age not in (None, "") else None,
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_assets(raw: dict[str, Any]) -> tuple[AssetSettings, ...]:
    assets: list[AssetSettings] = []
    for symbol, cfg in raw.items():
        assets.append(
            AssetSettings(
                symbol=str(symbol),
                ltv_ratio=int(cfg.get("ltv_ratio", 0)),
                liquidation_threshold=int(cfg.get("liquidation_threshold", 0)),
                reserve_factor=int(cfg.get("reserve_factor", 0)),
            )
        )
    return tuple(assets)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        pool=_build_pool(raw.get("pool", {})),
        storage=_build_storage(raw.get("storage", {})),
        oracle=_build_oracle(raw.get("oracle", {})),
        assets=_build_assets(raw.get("assets", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.pool.admin:
        raise ValueError("pool.admin must be set")
    if not cfg.pool.pool_id:
        raise ValueError("pool.pool_id must not be empty")

    if cfg.storage.backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend '{cfg.storage.backend}' "
            f"(expected one of {', '.join(STORAGE_BACKENDS)})"
        )

    age = cfg.oracle.max_price_age_seconds
    if age is not None and age <= 0:
        raise ValueError("oracle.max_price_age_seconds must be positive")

    limits = (
        ("ltv_ratio", MAX_LTV_RATIO),
        ("liquidation_threshold", MAX_LIQUIDATION_THRESHOLD),
        ("reserve_factor", MAX_RESERVE_FACTOR),
    )
    for asset in cfg.assets:
        for name, limit in limits:
            value = getattr(asset, name)
            if not 0 <= value <= limit:
                raise ValueError(
                    f"Asset '{asset.symbol}' {name} {value} outside 0..{limit}"
                )
