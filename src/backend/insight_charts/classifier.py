"""
Shape-sniffing for raw PostHog insight payloads.

PostHog does not guarantee a schema for ``result``: its shape depends on the
insight kind and on the API version that produced it. ``classify_insight``
inspects the payload once and returns one of a closed set of variants so the
normalizers can work on a known shape.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Sequence

from .models import (
    AlternateInsight,
    FunnelInsight,
    GenericInsight,
    InsightVariant,
    LifecycleInsight,
    RetentionInsight,
    StickinessInsight,
    TrendsInsight,
    UnrecognizedInsight,
)

logger = logging.getLogger(__name__)

_VARIANTS_BY_TYPE: Dict[str, Callable[[Sequence[Any]], InsightVariant]] = {
    "TRENDS": TrendsInsight,
    "FUNNELS": FunnelInsight,
    "LIFECYCLE": LifecycleInsight,
    "RETENTION": RetentionInsight,
    "STICKINESS": StickinessInsight,
}


def _lookup(value: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def resolve_insight_type(payload: Any) -> Optional[str]:
    """
    Return the insight type tag, e.g. ``"TRENDS"``.

    Legacy insights carry it in ``filters.insight``. Insights saved through
    the HogQL query editor only have ``query.source.kind``, of which only
    ``TrendsQuery`` is mapped.
    """

    tag = _lookup(payload, "filters", "insight")
    if tag:
        return tag if isinstance(tag, str) else str(tag)
    if _lookup(payload, "query", "source", "kind") == "TrendsQuery":
        return "TRENDS"
    return None


def classify_insight(payload: Any) -> InsightVariant:
    if not isinstance(payload, Mapping):
        return UnrecognizedInsight("no insight data provided")

    result = payload.get("result")
    if result is None:
        logger.debug("Insight has no result; keys present: %s", list(payload))
        return UnrecognizedInsight("no result data in the insight")

    insight_type = resolve_insight_type(payload)

    if not isinstance(result, (list, tuple)):
        if isinstance(result, Mapping) and result.get("days"):
            return AlternateInsight(result)
        return UnrecognizedInsight(
            f"result of type {type(result).__name__} is not a recognized format"
        )

    if insight_type == "PATHS":
        return UnrecognizedInsight("paths insights are not compatible with line or bar charts")

    factory = _VARIANTS_BY_TYPE.get(insight_type or "")
    if factory is None:
        return GenericInsight(list(result), insight_type=insight_type)
    return factory(list(result))
