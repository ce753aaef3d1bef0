"""
Runtime configuration for the customer resolver.

Values come from the process environment (optionally seeded from a ``.env``
file via python-dotenv) and are validated by a Pydantic model so that a bad
deployment fails at start-up instead of mid-conversation.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResolverSettings(BaseModel):
    """Tunable thresholds and timings. Defaults mirror production values."""

    model_config = ConfigDict(allow_inf_nan=False)

    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    sweep_interval_seconds: float = Field(default=300.0, gt=0)
    cache_size: int = Field(default=10, ge=1)
    cache_floor: float = Field(default=0.35, ge=0.0, le=1.0)
    store_floor: float = Field(default=0.3, ge=0.0, le=1.0)
    auto_accept_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    similar_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    confirm_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    duplicate_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    similar_limit: int = Field(default=5, ge=1)
    balance_poll_seconds: float = Field(default=1.0, gt=0)
    log_level: str = "INFO"

    @model_validator(mode='after')
    def check_threshold_order(self):
        """The similar-candidate gate must not sit above the confirmation gate."""
        if self.similar_threshold > self.confirm_threshold:
            raise ValueError('similar_threshold must not exceed confirm_threshold')
        return self

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ResolverSettings":
        """
        Builds settings from RESOLVER_* environment variables.

        Args:
            env_file: Optional path to a .env file. Existing variables win.
        """
        load_dotenv(env_file)

        mapping = {
            'cache_ttl_seconds': 'RESOLVER_CACHE_TTL_SECONDS',
            'sweep_interval_seconds': 'RESOLVER_SWEEP_INTERVAL_SECONDS',
            'cache_size': 'RESOLVER_CACHE_SIZE',
            'cache_floor': 'RESOLVER_CACHE_FLOOR',
            'store_floor': 'RESOLVER_STORE_FLOOR',
            'auto_accept_threshold': 'RESOLVER_AUTO_ACCEPT',
            'similar_threshold': 'RESOLVER_SIMILAR_THRESHOLD',
            'confirm_threshold': 'RESOLVER_CONFIRM_THRESHOLD',
            'duplicate_threshold': 'RESOLVER_DUPLICATE_THRESHOLD',
            'similar_limit': 'RESOLVER_SIMILAR_LIMIT',
            'balance_poll_seconds': 'RESOLVER_BALANCE_POLL_SECONDS',
            'log_level': 'RESOLVER_LOG_LEVEL',
        }
        values = {}
        for field_name, env_name in mapping.items():
            raw = os.getenv(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()

        # Pydantic coerces numeric strings and rejects garbage
        return cls(**values)
