"""
Runtime configuration for the insight chart service.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel

_logging_configured = False


class PostHogConfig(BaseModel):
    api_key: Optional[str] = None
    """Personal API key, sent as a bearer token."""

    region: Literal["us", "eu"] = "us"
    """Selects the PostHog cloud host."""

    project_id: Optional[str] = None
    """Default project used when a request does not name one."""

    timeout_seconds: int = 30
    insight_list_limit: int = 100


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class InsightChartsConfig(BaseModel):
    posthog: PostHogConfig = PostHogConfig()
    logging: LoggingConfig = LoggingConfig()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _region(raw: Any, default: str) -> str:
    region = str(raw).strip().lower() if raw is not None else default
    return region if region in ("us", "eu") else default


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> InsightChartsConfig:
    """
    Build the configuration from defaults, ``overrides`` and the environment.

    Environment variables win over ``overrides``, which win over defaults.
    """

    cfg = InsightChartsConfig()
    overrides = overrides or {}

    posthog_cfg = overrides.get("posthog", {})
    cfg.posthog = PostHogConfig(
        api_key=os.getenv("POSTHOG_API_KEY", posthog_cfg.get("api_key", cfg.posthog.api_key)),
        region=_region(os.getenv("POSTHOG_REGION", posthog_cfg.get("region", cfg.posthog.region)), cfg.posthog.region),
        project_id=os.getenv("POSTHOG_PROJECT_ID", posthog_cfg.get("project_id", cfg.posthog.project_id)),
        timeout_seconds=_env_int(
            "POSTHOG_TIMEOUT_SECONDS", posthog_cfg.get("timeout_seconds", cfg.posthog.timeout_seconds)
        ),
        insight_list_limit=_env_int(
            "POSTHOG_INSIGHT_LIMIT", posthog_cfg.get("insight_list_limit", cfg.posthog.insight_list_limit)
        ),
    )

    logging_cfg = overrides.get("logging", {})
    cfg.logging = LoggingConfig(
        level=os.getenv("INSIGHT_CHARTS_LOG_LEVEL", logging_cfg.get("level", cfg.logging.level)),
        format=logging_cfg.get("format", cfg.logging.format),
    )

    return cfg


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install a root handler once per process."""
    global _logging_configured

    if _logging_configured:
        return

    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format)
    _logging_configured = True
