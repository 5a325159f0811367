import pytest

from backend.insight_charts.models import ChartDataset, PostHogInsight, PostHogProject
from backend.insight_charts.service import (
    CHART_PALETTE,
    ClientNotConfiguredError,
    InsightChartService,
    build_series_config,
    describe_empty_result,
    filter_insights,
)


class FakeClient:
    def __init__(self, insights=None, payload=None):
        self.insights = insights or []
        self.payload = payload
        self.calls = []

    def fetch_projects(self):
        self.calls.append(("projects",))
        return [PostHogProject(id="1", name="Default project", uuid="abc")]

    def fetch_insights(self, project_id=None):
        self.calls.append(("insights", project_id))
        return list(self.insights)

    def fetch_insight(self, insight_id, project_id=None):
        self.calls.append(("insight", insight_id, project_id))
        return self.payload


def test_build_returns_records_categories_and_series():
    payload = {
        "filters": {"insight": "TRENDS"},
        "result": [{"label": "Signups", "data": [3, 5], "labels": ["Mon", "Tue"]}],
    }

    dataset = InsightChartService().build(payload, "bar")

    assert dataset.records == [{"date": "Mon", "Signups": 3}, {"date": "Tue", "Signups": 5}]
    assert dataset.categories == ["Signups"]
    assert dataset.chart_type == "bar"
    assert dataset.insight_type == "TRENDS"
    assert dataset.series["Signups"].color == CHART_PALETTE[0]
    assert not dataset.is_empty


def test_build_with_unusable_payload_is_empty():
    dataset = InsightChartService().build({"filters": {"insight": "PATHS"}, "result": []})

    assert dataset.is_empty
    assert dataset.categories == []
    assert dataset.series == {}
    assert dataset.insight_type == "PATHS"


def test_series_colors_cycle_through_palette():
    categories = [f"Period {index}" for index in range(7)]

    series = build_series_config(categories)

    assert list(series) == categories
    assert series["Period 5"].color == CHART_PALETTE[0]
    assert series["Period 6"].color == CHART_PALETTE[1]
    assert series["Period 2"].label == "Period 2"


def test_filter_insights_matches_name_or_description_case_insensitively():
    insights = [
        PostHogInsight(id="1", name="Weekly signups"),
        PostHogInsight(id="2", name="Churn", description="Users who SIGNED up and left"),
        PostHogInsight(id="3", name="Revenue"),
    ]

    assert [insight.id for insight in filter_insights(insights, "sign")] == ["1", "2"]
    assert [insight.id for insight in filter_insights(insights, "")] == ["1", "2", "3"]
    assert filter_insights(insights, "retention") == []


def test_describe_empty_result_mentions_insight_type():
    dataset = ChartDataset(records=[], categories=[], insight_type=None)

    assert 'insight type "unknown"' in describe_empty_result(dataset)


def test_build_for_insight_fetches_then_transforms():
    client = FakeClient(payload={"filters": {"insight": "FUNNELS"}, "result": [{"name": "Visit", "count": 9}]})
    service = InsightChartService(client=client)

    dataset = service.build_for_insight("77", project_id="1", chart_type="line")

    assert client.calls == [("insight", "77", "1")]
    assert dataset.categories == ["count", "conversion_rate"]


def test_list_insights_applies_search():
    client = FakeClient(insights=[PostHogInsight(id="1", name="DAU"), PostHogInsight(id="2", name="Funnel")])

    insights = InsightChartService(client=client).list_insights("1", search="dau")

    assert [insight.id for insight in insights] == ["1"]


def test_methods_needing_posthog_fail_without_client():
    service = InsightChartService()

    with pytest.raises(ClientNotConfiguredError):
        service.list_projects()
    with pytest.raises(ClientNotConfiguredError):
        service.build_for_insight("1", project_id="1")


def test_dataset_as_dict_uses_camel_case_keys():
    payload = {"filters": {"insight": "FUNNELS"}, "result": [{"name": "Visit", "count": 4, "conversion_rate": 1}]}

    serialized = InsightChartService().build(payload, "bar").as_dict()

    assert serialized == {
        "records": [{"date": "Visit", "count": 4, "conversion_rate": 1}],
        "categories": ["count", "conversion_rate"],
        "chartType": "bar",
        "insightType": "FUNNELS",
        "series": {
            "count": {"label": "count", "color": CHART_PALETTE[0]},
            "conversion_rate": {"label": "conversion_rate", "color": CHART_PALETTE[1]},
        },
    }
