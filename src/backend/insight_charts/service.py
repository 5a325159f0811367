from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .classifier import classify_insight, resolve_insight_type
from .models import (
    ChartDataset,
    ChartRecord,
    ChartType,
    NormalizeFailure,
    PostHogInsight,
    PostHogProject,
    SeriesStyle,
)
from .normalizers import normalize
from .repository import PostHogClient

logger = logging.getLogger(__name__)

CHART_PALETTE = tuple(f"hsl(var(--chart-{index}))" for index in range(1, 6))


class ClientNotConfiguredError(RuntimeError):
    pass


def transform_to_chart_format(payload: Any, chart_type: ChartType = "line") -> List[ChartRecord]:
    """
    Normalize a raw PostHog insight into chart records.

    Never raises: a payload that is missing, unrecognized or malformed yields
    an empty list and a logged diagnostic. ``chart_type`` does not change the
    output shape.
    """

    variant = classify_insight(payload)
    logger.info("Transforming %s for a %s chart", type(variant).__name__, chart_type)

    outcome = normalize(variant)
    if isinstance(outcome, NormalizeFailure):
        logger.warning("Insight produced no chart data: %s", outcome.reason)
        return []

    logger.info("Transformed insight into %d chart records", len(outcome.records))
    return outcome.records


def extract_categories(records: Sequence[ChartRecord]) -> List[str]:
    if not records:
        return []
    return [key for key in records[0] if key != "date"]


def build_series_config(categories: Sequence[str]) -> Dict[str, SeriesStyle]:
    return {
        category: SeriesStyle(label=category, color=CHART_PALETTE[index % len(CHART_PALETTE)])
        for index, category in enumerate(categories)
    }


def filter_insights(insights: Sequence[PostHogInsight], query: Optional[str]) -> List[PostHogInsight]:
    if not query:
        return list(insights)
    needle = query.lower()
    return [
        insight
        for insight in insights
        if needle in insight.name.lower() or (insight.description and needle in insight.description.lower())
    ]


def describe_empty_result(dataset: ChartDataset) -> str:
    return (
        "Could not transform the data for the selected chart type. "
        f'The insight type "{dataset.insight_type or "unknown"}" may not be compatible with this visualization.'
    )


class InsightChartService:
    """
    Turns PostHog insights into chart datasets.

    ``client`` is only needed for the methods that fetch from PostHog;
    ``build`` works on any payload the caller already holds.
    """

    def __init__(self, client: Optional[PostHogClient] = None) -> None:
        self.client = client

    def build(self, payload: Any, chart_type: ChartType = "line") -> ChartDataset:
        records = transform_to_chart_format(payload, chart_type)
        categories = extract_categories(records)
        return ChartDataset(
            records=records,
            categories=categories,
            chart_type=chart_type,
            insight_type=resolve_insight_type(payload),
            series=build_series_config(categories),
        )

    def list_projects(self) -> List[PostHogProject]:
        return self._require_client().fetch_projects()

    def list_insights(self, project_id: Optional[str] = None, search: Optional[str] = None) -> List[PostHogInsight]:
        insights = self._require_client().fetch_insights(project_id)
        return filter_insights(insights, search)

    def build_for_insight(
        self,
        insight_id: str,
        project_id: Optional[str] = None,
        chart_type: ChartType = "line",
    ) -> ChartDataset:
        payload = self._require_client().fetch_insight(insight_id, project_id)
        return self.build(payload, chart_type)

    def _require_client(self) -> PostHogClient:
        if self.client is None:
            raise ClientNotConfiguredError(
                "POSTHOG_API_KEY is not configured; post insight payloads to /transform instead."
            )
        return self.client
