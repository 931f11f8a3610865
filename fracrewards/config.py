"""
Ledger configuration.

``LedgerConfig`` defaults reproduce the production deployment: a 450M-token
rewards allocation, a 100-token minimum stake, a 10% early-exit penalty and
the 5% / 7% / 10% / 13% / 16% APY ladder. Token figures are whole tokens and
are scaled by ``TOKEN_UNIT`` when the genesis state is built.

A YAML file may override any field. Loading is fail-closed: unknown keys,
wrong types and out-of-range values raise ``ConfigError``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .core.errors import InvalidThresholds
from .core.math import BPS_SCALE, TOKEN_UNIT
from .core.tiers import validate_thresholds
from .state.ledger import LedgerState
from .state.pool import PoolState
from .state.records import ALLOWED_LOCK_DAYS

CONFIG_SCHEMA = "fracrewards/ledger-config/v1"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class LedgerConfig:
    authority: str = "authority"
    reporters: tuple[str, ...] = ()

    allocation_tokens: int = 450_000_000
    min_stake_tokens: int = 100
    early_unstake_penalty_bps: int = 1_000

    # ordered as ALLOWED_LOCK_DAYS: 0 / 30 / 90 / 180 / 365 days
    apy_rates: tuple[int, ...] = (500, 700, 1_000, 1_300, 1_600)
    priority_threshold_tokens: tuple[int, ...] = (0, 1_000, 10_000, 100_000)
    small_reward_threshold_tokens: int = 1_000
    medium_reward_threshold_tokens: int = 10_000

    staking_vault: str = "staking_vault"
    rewards_reserve: str = "rewards_reserve"
    treasury: str = "treasury"

    def __post_init__(self) -> None:
        for name in ("authority", "staking_vault", "rewards_reserve", "treasury"):
            _require_str(getattr(self, name), name=name)
        for i, r in enumerate(self.reporters):
            _require_str(r, name=f"reporters[{i}]")
        for name in (
            "allocation_tokens", "min_stake_tokens", "early_unstake_penalty_bps",
            "small_reward_threshold_tokens", "medium_reward_threshold_tokens",
        ):
            _require_int(getattr(self, name), name=name)
        if self.min_stake_tokens == 0:
            raise ConfigError("min_stake_tokens must be positive")
        if self.early_unstake_penalty_bps > BPS_SCALE:
            raise ConfigError(f"early_unstake_penalty_bps must be <= {BPS_SCALE}")
        if len(self.apy_rates) != len(ALLOWED_LOCK_DAYS):
            raise ConfigError(f"apy_rates must list {len(ALLOWED_LOCK_DAYS)} rates")
        for i, rate in enumerate(self.apy_rates):
            if _require_int(rate, name=f"apy_rates[{i}]") > BPS_SCALE:
                raise ConfigError(f"apy_rates[{i}] must be <= {BPS_SCALE}")
        try:
            validate_thresholds(self.priority_threshold_tokens)
            validate_thresholds(
                (0, self.small_reward_threshold_tokens, self.medium_reward_threshold_tokens)
            )
        except InvalidThresholds as exc:
            raise ConfigError(str(exc)) from exc


def _require_mapping(obj: Any, *, name: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{name} must be an object")
    return obj


def _require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj:
        raise ConfigError(f"{name} must be a non-empty string")
    return obj


def _require_int(obj: Any, *, name: str) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool):
        raise ConfigError(f"{name} must be an int")
    if obj < 0:
        raise ConfigError(f"{name} must be non-negative")
    return obj


def _require_int_list(obj: Any, *, name: str) -> tuple[int, ...]:
    if not isinstance(obj, list):
        raise ConfigError(f"{name} must be a list")
    return tuple(_require_int(v, name=f"{name}[{i}]") for i, v in enumerate(obj))


def _require_str_list(obj: Any, *, name: str) -> tuple[str, ...]:
    if not isinstance(obj, list):
        raise ConfigError(f"{name} must be a list")
    return tuple(_require_str(v, name=f"{name}[{i}]") for i, v in enumerate(obj))


_TUPLE_FIELDS = {
    "reporters": _require_str_list,
    "apy_rates": _require_int_list,
    "priority_threshold_tokens": _require_int_list,
}


def config_from_mapping(raw: Any) -> LedgerConfig:
    root = _require_mapping(raw, name="config")
    schema = root.get("schema", CONFIG_SCHEMA)
    if schema != CONFIG_SCHEMA:
        raise ConfigError(f"unsupported config schema: {schema}")

    known = {f.name for f in fields(LedgerConfig)}
    overrides: dict[str, Any] = {}
    for key, value in root.items():
        if key == "schema":
            continue
        if key not in known:
            raise ConfigError(f"unknown config key: {key}")
        convert = _TUPLE_FIELDS.get(key)
        overrides[key] = convert(value, name=key) if convert else value
    return LedgerConfig(**overrides)


def load_config(path: str | Path) -> LedgerConfig:
    raw = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return LedgerConfig()
    return config_from_mapping(data)


def initial_state(config: LedgerConfig | None = None) -> LedgerState:
    """Genesis ledger: the full allocation sits in ``remaining_total``."""
    cfg = config or LedgerConfig()
    allocation = cfg.allocation_tokens * TOKEN_UNIT
    pool = PoolState(
        authority=cfg.authority,
        original_allocation=allocation,
        remaining_total=allocation,
        apy_rates=dict(zip(ALLOWED_LOCK_DAYS, cfg.apy_rates)),
        priority_thresholds=tuple(t * TOKEN_UNIT for t in cfg.priority_threshold_tokens),
        small_reward_threshold=cfg.small_reward_threshold_tokens * TOKEN_UNIT,
        medium_reward_threshold=cfg.medium_reward_threshold_tokens * TOKEN_UNIT,
        min_stake=cfg.min_stake_tokens * TOKEN_UNIT,
        early_unstake_penalty_bps=cfg.early_unstake_penalty_bps,
        staking_vault=cfg.staking_vault,
        rewards_reserve=cfg.rewards_reserve,
        treasury=cfg.treasury,
        reporters=frozenset(cfg.reporters),
    )
    return LedgerState(pool=pool)
