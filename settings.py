"""
settings.py - Agent configuration.

Values come from three layers, later layers winning:
    1. defaults below (the demo network's well-known keys and amounts)
    2. `.env` / process environment (`TEST_AGENT_*`)
    3. explicit overrides (the CLI flags)
"""

from __future__ import annotations

import os
from typing import Any, Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from logging_config import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "TEST_AGENT_"

# Demo-network keys used by the payment scenario.
DEFAULT_SENDER_PUBLIC_KEY = "ZsMSUuKL9zLAF7sMn951oakTFRCCDw9rDfJgqJ55VMtPXaPa5vPwntQRFJzsHyeh8R8"
DEFAULT_RECEIVER_PUBLIC_KEY = "ZsMSUtsVDsfGXFf2jMerfdLemdhu4NRrmA8T948sB5WfKNrrHuwLPj4Pjk34CrfJTVy"

ENV_FIELDS = (
    "rosetta_uri",
    "graphql_uri",
    "http_timeout_s",
    "sender_public_key",
    "sender_password",
    "receiver_public_key",
)


class RetryPolicy(BaseModel):
    """Attempt budget and delay schedule for one polling step."""

    model_config = ConfigDict(frozen=True)

    attempts: int = Field(..., ge=0)
    initial_delay_s: float = Field(..., ge=0)
    each_delay_s: float = Field(..., ge=0)


class AgentSettings(BaseModel):
    """Everything the scenario needs besides the two clients."""

    model_config = ConfigDict(extra="ignore")

    rosetta_uri: str = "http://localhost:3087"
    graphql_uri: str = "http://localhost:3085/graphql"
    http_timeout_s: float = Field(default=10.0, gt=0)

    sender_public_key: str = DEFAULT_SENDER_PUBLIC_KEY
    sender_password: str = ""
    receiver_public_key: str = DEFAULT_RECEIVER_PUBLIC_KEY
    token_id: int = Field(default=1, ge=0, le=2**64 - 1)
    fee: int = Field(default=2_000_000_000, gt=0)
    amount: int = Field(default=5_000_000_000, gt=0)
    expected_status: str = "Pending"

    sync_policy: RetryPolicy = RetryPolicy(attempts=45, initial_delay_s=2.0, each_delay_s=2.0)
    mempool_policy: RetryPolicy = RetryPolicy(attempts=5, initial_delay_s=0.1, each_delay_s=1.0)
    settle_delay_s: float = Field(default=2.0, ge=0)

    @field_validator("rosetta_uri", "graphql_uri", mode="before")
    @classmethod
    def _strip_uri(cls, value: Any) -> str:
        text = str(value or "").strip().rstrip("/")
        if not text:
            raise ValueError("URI cannot be empty")
        if not text.startswith(("http://", "https://")):
            raise ValueError(f"URI must start with http:// or https://, got {text!r}")
        try:
            host = httpx.URL(text).host
        except httpx.InvalidURL as exc:
            raise ValueError(f"URI is not valid: {text!r}: {exc}") from exc
        if not host:
            raise ValueError(f"URI has no host: {text!r}")
        return text


def _env_overrides() -> dict[str, str]:
    values: dict[str, str] = {}
    for name in ENV_FIELDS:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def load_settings(overrides: Optional[dict[str, Any]] = None, *, use_dotenv: bool = True) -> AgentSettings:
    """Build settings from defaults, environment and explicit overrides.

    None values in `overrides` are skipped so unset CLI flags fall through
    to the environment.
    """
    if use_dotenv:
        try:
            load_dotenv()
        except UnicodeDecodeError:
            # Fallback for legacy Windows-encoded .env files.
            load_dotenv(encoding="cp1252")

    raw: dict[str, Any] = _env_overrides()
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    settings = AgentSettings(**raw)
    logger.debug(
        "settings_loaded | rosetta_uri=%s | graphql_uri=%s | env_keys=%s",
        settings.rosetta_uri,
        settings.graphql_uri,
        sorted(_env_overrides()),
    )
    return settings
