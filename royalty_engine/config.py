"""
Engine and tenant configuration.

EngineConfig comes from the process environment (Lambda / container env vars).
TenantSettings comes with each request; anything it leaves out falls back to
the EngineConfig values.
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

HISTORY_POLICY_WARN = "warn"
HISTORY_POLICY_FAIL = "fail"
HISTORY_POLICIES = (HISTORY_POLICY_WARN, HISTORY_POLICY_FAIL)

DEFAULT_WORKERS = 4


def _parse_policy(value: str | None, default: str = HISTORY_POLICY_WARN) -> str:
    if value is None or value == "":
        return default
    policy = str(value).strip().lower()
    if policy not in HISTORY_POLICIES:
        raise ValueError(
            f"Invalid lifetime_history_policy: {value}. Must be one of {', '.join(HISTORY_POLICIES)}"
        )
    return policy


def _parse_workers(value, default: int = DEFAULT_WORKERS) -> int:
    if value is None or value == "":
        return default
    workers = int(value)
    if workers < 1:
        raise ValueError(f"max_workers must be at least 1, got: {workers}")
    return workers


@dataclass(frozen=True)
class EngineConfig:
    """Process-wide settings."""

    environment: str = "dev"
    max_workers: int = DEFAULT_WORKERS
    batch_timeout: float | None = None  # seconds
    lifetime_history_policy: str = HISTORY_POLICY_WARN

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        timeout = env.get("STATEMENT_BATCH_TIMEOUT")
        config = cls(
            environment=env.get("ENVIRONMENT", "dev"),
            max_workers=_parse_workers(env.get("STATEMENT_WORKERS")),
            batch_timeout=float(timeout) if timeout else None,
            lifetime_history_policy=_parse_policy(env.get("LIFETIME_HISTORY_POLICY")),
        )
        logger.debug(f"Engine config loaded: {config}")
        return config


@dataclass(frozen=True)
class TenantSettings:
    """Per-tenant knobs handed in with a generation request."""

    tenant_id: str | None = None
    lifetime_history_policy: str = HISTORY_POLICY_WARN
    max_workers: int = DEFAULT_WORKERS

    @property
    def fail_on_incomplete_history(self) -> bool:
        return self.lifetime_history_policy == HISTORY_POLICY_FAIL

    @classmethod
    def from_config(cls, config: EngineConfig, tenant_id: str | None = None) -> "TenantSettings":
        return cls(
            tenant_id=tenant_id,
            lifetime_history_policy=config.lifetime_history_policy,
            max_workers=config.max_workers,
        )

    @classmethod
    def from_dict(cls, data: dict | None, config: EngineConfig | None = None) -> "TenantSettings":
        config = config or EngineConfig()
        data = data or {}
        return cls(
            tenant_id=data.get("tenant_id"),
            lifetime_history_policy=_parse_policy(
                data.get("lifetime_history_policy"), default=config.lifetime_history_policy
            ),
            max_workers=_parse_workers(data.get("max_workers"), default=config.max_workers),
        )
