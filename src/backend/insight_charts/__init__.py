"""
PostHog insight chart helpers.

This package reshapes the heterogeneous ``result`` documents returned by the
PostHog insights API (trends, funnels, lifecycle, retention, stickiness and
unknown shapes) into flat, date-keyed records that line and bar charts can
render directly.
"""

from .classifier import classify_insight, resolve_insight_type  # noqa: F401
from .configuration import InsightChartsConfig, LoggingConfig, PostHogConfig, load_config  # noqa: F401
from .models import (  # noqa: F401
    ChartDataset,
    ChartRecord,
    ChartType,
    PostHogCredentials,
    PostHogInsight,
    PostHogProject,
    SeriesStyle,
)
from .normalizers import normalize  # noqa: F401
from .repository import (  # noqa: F401
    PostHogAPIError,
    PostHogClient,
    build_client_from_env,
    get_base_url,
)
from .service import (  # noqa: F401
    InsightChartService,
    extract_categories,
    filter_insights,
    transform_to_chart_format,
)
