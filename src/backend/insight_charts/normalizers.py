from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from .models import (
    AlternateInsight,
    ChartRecord,
    FunnelInsight,
    GenericInsight,
    InsightVariant,
    LifecycleInsight,
    NormalizeFailure,
    NormalizeResult,
    NormalizeSuccess,
    RetentionInsight,
    StickinessInsight,
    TrendsInsight,
    UnrecognizedInsight,
)

logger = logging.getLogger(__name__)

_MissingPolicy = Literal["skip", "none", "omit"]


class MalformedPayloadError(ValueError):
    """Raised when a result entry cannot be read at all (e.g. a ``null`` series)."""


# ---------------------------------------------------------------------------
# Field access helpers
# ---------------------------------------------------------------------------


def _entry(value: Any, index: int) -> Mapping:
    if isinstance(value, Mapping):
        return value
    if value is None:
        raise MalformedPayloadError(f"entry {index} is null")
    # Numbers, strings and nested lists have no fields to read.
    return {}


def _sequence(entry: Mapping, key: str) -> Optional[List[Any]]:
    value = entry.get(key)
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def _first_sequence(entry: Mapping, *keys: str) -> List[Any]:
    for key in keys:
        values = _sequence(entry, key)
        if values is not None:
            return values
    return []


def _coalesce(value: Any, default: Any) -> Any:
    return default if value is None else value


def _series_name(entry: Mapping, fallback: str) -> str:
    action = entry.get("action")
    action_name = action.get("name") if isinstance(action, Mapping) else None
    return str(entry.get("label") or action_name or fallback)


def _axis_key(label: Any) -> str:
    return label if isinstance(label, str) else str(label)


def _sort_by_date(records: List[ChartRecord]) -> List[ChartRecord]:
    return sorted(records, key=lambda record: _axis_key(record["date"]))


def _merge_by_axis(
    series: Iterable[Tuple[str, Sequence[Any], Sequence[Any]]],
    missing: _MissingPolicy,
) -> List[ChartRecord]:
    """
    Merge ``(name, axis, data)`` triples into one record per axis label.

    Records keep the order in which their label was first seen. ``missing``
    controls axis positions past the end of ``data``: ``skip`` ignores the
    position entirely, ``none`` stores ``None`` under the series name and
    ``omit`` creates the record without the series key.
    """

    records: Dict[str, ChartRecord] = {}
    for name, axis, data in series:
        for index, label in enumerate(axis):
            in_range = index < len(data)
            if not in_range and missing == "skip":
                continue
            record = records.setdefault(_axis_key(label), {"date": label})
            if in_range:
                record[name] = data[index]
            elif missing == "none":
                record[name] = None
    return list(records.values())


def _single_series(entries: Sequence[Any]) -> Optional[List[ChartRecord]]:
    """
    Chart the first entry on its own when it carries ``data`` and ``labels``.

    Most PostHog time series use this shape. Positions where ``data`` is short
    or ``null`` are charted as 0.
    """

    if not entries:
        return None
    first = _entry(entries[0], 0)
    data = _sequence(first, "data")
    labels = _sequence(first, "labels")
    if data is None or labels is None:
        return None

    name = _series_name(first, "Value")
    logger.debug("Charting %d points for single series %r", len(labels), name)
    return [
        {"date": label, name: _coalesce(data[index], 0) if index < len(data) else 0}
        for index, label in enumerate(labels)
    ]


def _fail_soft(normalizer: Callable[[Any], List[ChartRecord]]) -> Callable[[Any], NormalizeResult]:
    @functools.wraps(normalizer)
    def wrapper(variant: Any) -> NormalizeResult:
        try:
            return NormalizeSuccess(normalizer(variant))
        except (MalformedPayloadError, AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            return NormalizeFailure(f"{normalizer.__name__} failed: {exc}")

    return wrapper


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------


@_fail_soft
def normalize_trends(variant: TrendsInsight) -> List[ChartRecord]:
    single = _single_series(variant.series)
    if single is not None:
        return single

    merged: List[Tuple[str, Sequence[Any], Sequence[Any]]] = []
    for index, raw in enumerate(variant.series):
        entry = _entry(raw, index)
        data = _sequence(entry, "data")
        if data is None:
            logger.debug("Skipping trends series %d without a data array", index)
            continue
        merged.append(
            (_series_name(entry, f"Series {index + 1}"), _first_sequence(entry, "labels", "days"), data)
        )

    records = _merge_by_axis(merged, missing="skip")
    if records and isinstance(records[0]["date"], str):
        records = _sort_by_date(records)
    return records


@_fail_soft
def normalize_funnel(variant: FunnelInsight) -> List[ChartRecord]:
    records = []
    for index, raw in enumerate(variant.steps):
        step = _entry(raw, index)
        records.append(
            {
                "date": step.get("name") or f"Step {index + 1}",
                "count": _coalesce(step.get("count"), 0),
                "conversion_rate": _coalesce(step.get("conversion_rate"), 0),
            }
        )
    return records


@_fail_soft
def normalize_lifecycle(variant: LifecycleInsight) -> List[ChartRecord]:
    merged = []
    for index, raw in enumerate(variant.series):
        entry = _entry(raw, index)
        data = _sequence(entry, "data")
        days = _sequence(entry, "days")
        if data is None or days is None:
            continue
        merged.append((str(entry.get("status") or "unknown"), days, data))
    return _sort_by_date(_merge_by_axis(merged, missing="none"))


@_fail_soft
def normalize_retention(variant: RetentionInsight) -> List[ChartRecord]:
    records = []
    for index, raw in enumerate(variant.cohorts):
        cohort = _entry(raw, index)
        record: ChartRecord = {"date": cohort.get("date") or f"Cohort {index + 1}"}
        for period, value in enumerate(_sequence(cohort, "values") or []):
            record[f"Period {period}"] = value
        records.append(record)
    return records


@_fail_soft
def normalize_stickiness(variant: StickinessInsight) -> List[ChartRecord]:
    # Unlike trends and lifecycle, stickiness keeps first-seen label order.
    merged = []
    for index, raw in enumerate(variant.series):
        entry = _entry(raw, index)
        data = _sequence(entry, "data")
        labels = _sequence(entry, "labels")
        if data is None or labels is None:
            continue
        merged.append((str(entry.get("label") or f"Series {index + 1}"), labels, data))
    return _merge_by_axis(merged, missing="none")


@_fail_soft
def normalize_alternate(variant: AlternateInsight) -> List[ChartRecord]:
    days = _sequence(variant.result, "days")
    data = _sequence(variant.result, "data")
    if days is None or data is None:
        raise MalformedPayloadError("alternate result needs both days and data arrays")
    return [
        {"date": day, "value": _coalesce(data[index], 0) if index < len(data) else 0}
        for index, day in enumerate(days)
    ]


@_fail_soft
def normalize_generic(variant: GenericInsight) -> List[ChartRecord]:
    entries = variant.entries
    if not entries:
        return []

    single = _single_series(entries)
    if single is not None:
        return single

    first = _entry(entries[0], 0)
    for metric in ("count", "value"):
        if metric in first:
            rows = [_entry(raw, index) for index, raw in enumerate(entries)]
            return [
                {
                    "date": row.get("name") or row.get("label") or f"Item {index + 1}",
                    metric: _coalesce(row.get(metric), 0),
                }
                for index, row in enumerate(rows)
            ]

    if _sequence(first, "data") is not None:
        merged = []
        for index, raw in enumerate(entries):
            entry = _entry(raw, index)
            merged.append(
                (
                    str(entry.get("name") or entry.get("label") or f"Series {index + 1}"),
                    _first_sequence(entry, "days", "dates", "labels"),
                    _sequence(entry, "data") or [],
                )
            )
        return _merge_by_axis(merged, missing="omit")

    raise MalformedPayloadError(
        f"could not extract chart data from {variant.insight_type or 'untyped'} insight entries with keys {list(first)}"
    )


def normalize(variant: InsightVariant) -> NormalizeResult:
    if isinstance(variant, UnrecognizedInsight):
        return NormalizeFailure(variant.reason)
    normalizer = _NORMALIZERS[type(variant)]
    return normalizer(variant)


_NORMALIZERS: Dict[type, Callable[[Any], NormalizeResult]] = {
    TrendsInsight: normalize_trends,
    FunnelInsight: normalize_funnel,
    LifecycleInsight: normalize_lifecycle,
    RetentionInsight: normalize_retention,
    StickinessInsight: normalize_stickiness,
    AlternateInsight: normalize_alternate,
    GenericInsight: normalize_generic,
}
