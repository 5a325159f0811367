from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

ChartType = Literal["line", "bar"]
Region = Literal["us", "eu"]

ChartRecord = Dict[str, Any]
"""
One row of chart data.

``date`` always comes first and holds the category axis label (a day, a
funnel step name or a cohort label). Every other key is a series name mapped
to its value at that axis position.
"""


# ---------------------------------------------------------------------------
# Classified insight variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrendsInsight:
    series: Sequence[Any]


@dataclass(frozen=True)
class FunnelInsight:
    steps: Sequence[Any]


@dataclass(frozen=True)
class LifecycleInsight:
    series: Sequence[Any]


@dataclass(frozen=True)
class RetentionInsight:
    cohorts: Sequence[Any]


@dataclass(frozen=True)
class StickinessInsight:
    series: Sequence[Any]


@dataclass(frozen=True)
class AlternateInsight:
    """
    A single bare series where ``result`` is an object rather than a list,
    e.g. ``{"days": [...], "data": [...]}``.
    """

    result: Mapping[str, Any]


@dataclass(frozen=True)
class GenericInsight:
    entries: Sequence[Any]
    insight_type: Optional[str] = None


@dataclass(frozen=True)
class UnrecognizedInsight:
    reason: str


InsightVariant = Union[
    TrendsInsight,
    FunnelInsight,
    LifecycleInsight,
    RetentionInsight,
    StickinessInsight,
    AlternateInsight,
    GenericInsight,
    UnrecognizedInsight,
]


# ---------------------------------------------------------------------------
# Normalizer results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizeSuccess:
    records: List[ChartRecord]


@dataclass(frozen=True)
class NormalizeFailure:
    reason: str


NormalizeResult = Union[NormalizeSuccess, NormalizeFailure]


# ---------------------------------------------------------------------------
# Caller-facing output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeriesStyle:
    label: str
    color: str


@dataclass(frozen=True)
class ChartDataset:
    """
    Normalized chart data for one insight.

    ``categories`` are taken from the first record only. Later records may be
    missing some of them, which consumers should read as "no value at this
    axis position".
    """

    records: List[ChartRecord]
    categories: List[str]
    chart_type: ChartType = "line"
    insight_type: Optional[str] = None
    series: Dict[str, SeriesStyle] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the dataset into the JSON shape consumed by the chart widgets.
        """

        return {
            "records": [dict(record) for record in self.records],
            "categories": list(self.categories),
            "chartType": self.chart_type,
            "insightType": self.insight_type,
            "series": {
                name: {"label": style.label, "color": style.color}
                for name, style in self.series.items()
            },
        }


# ---------------------------------------------------------------------------
# PostHog API resources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostHogCredentials:
    api_key: str
    region: Region = "us"
    project_id: Optional[str] = None


@dataclass(frozen=True)
class PostHogProject:
    id: str
    name: str
    uuid: Optional[str] = None


@dataclass(frozen=True)
class PostHogInsight:
    """
    Summary of a saved insight as listed by the projects API.

    ``result`` and ``filters`` are kept untouched; they are only interpreted
    by the transformer.
    """

    id: str
    name: str
    description: Optional[str] = None
    result: Any = None
    filters: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    last_refresh: Optional[str] = None
    type: Optional[str] = None
