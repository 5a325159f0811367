from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from .configuration import configure_logging, load_config
from .models import ChartDataset, ChartType, PostHogInsight, PostHogProject
from .repository import PostHogAPIError, build_client_from_env
from .service import ClientNotConfiguredError, InsightChartService, describe_empty_result

config = load_config()
configure_logging(config.logging)

app = FastAPI(title="PostHog Insight Charts API", version="0.1.0")
service = InsightChartService(client=build_client_from_env(config.posthog))


class TransformRequest(BaseModel):
    insight: Optional[Dict[str, Any]] = None
    chart_type: ChartType = "line"


class ChartResponse(BaseModel):
    status: Literal["ok", "empty"]
    data: Dict[str, Any]
    message: Optional[str] = None


class ProjectPayload(BaseModel):
    id: str
    name: str
    uuid: Optional[str] = None


class InsightSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: Optional[str] = None
    insight_type: Optional[str] = None
    last_refresh: Optional[str] = None


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/transform", response_model=ChartResponse)
async def transform_endpoint(request: TransformRequest) -> ChartResponse:
    dataset = service.build(request.insight, request.chart_type)
    return _to_chart_response(dataset)


@app.get("/projects", response_model=List[ProjectPayload])
def list_projects() -> List[ProjectPayload]:
    try:
        projects = service.list_projects()
    except ClientNotConfiguredError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except PostHogAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_convert_project(project) for project in projects]


@app.get("/projects/{project_id}/insights", response_model=List[InsightSummary])
def list_insights(project_id: str, search: Optional[str] = Query(None)) -> List[InsightSummary]:
    try:
        insights = service.list_insights(project_id, search=search)
    except ClientNotConfiguredError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except PostHogAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_convert_insight(insight) for insight in insights]


@app.get("/projects/{project_id}/insights/{insight_id}/chart", response_model=ChartResponse)
def insight_chart(project_id: str, insight_id: str, chart_type: ChartType = Query("line")) -> ChartResponse:
    try:
        dataset = service.build_for_insight(insight_id, project_id=project_id, chart_type=chart_type)
    except ClientNotConfiguredError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except PostHogAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _to_chart_response(dataset)


def _to_chart_response(dataset: ChartDataset) -> ChartResponse:
    if dataset.is_empty:
        return ChartResponse(status="empty", data=dataset.as_dict(), message=describe_empty_result(dataset))
    return ChartResponse(status="ok", data=dataset.as_dict())


def _convert_project(project: PostHogProject) -> ProjectPayload:
    return ProjectPayload(id=project.id, name=project.name, uuid=project.uuid)


def _convert_insight(insight: PostHogInsight) -> InsightSummary:
    tag = insight.filters.get("insight")
    return InsightSummary(
        id=insight.id,
        name=insight.name,
        description=insight.description,
        type=insight.type,
        insight_type=tag if isinstance(tag, str) else None,
        last_refresh=insight.last_refresh,
    )
