from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional

from .configuration import PostHogConfig, load_config
from .models import PostHogCredentials, PostHogInsight, PostHogProject, Region

logger = logging.getLogger(__name__)

BASE_URLS: Dict[str, str] = {
    "us": "https://us.posthog.com",
    "eu": "https://eu.i.posthog.com",
}


class PostHogAPIError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


def get_base_url(region: Region) -> str:
    return BASE_URLS["us"] if region == "us" else BASE_URLS["eu"]


class PostHogClient:
    """
    Minimal read-only client for the PostHog REST API.

    Endpoints used:
      GET /api/projects/
      GET /api/projects/{project_id}/insights/?limit=...
      GET /api/projects/{project_id}/insights/{insight_id}
    """

    def __init__(self, credentials: PostHogCredentials, timeout_s: int = 30, insight_limit: int = 100):
        self.credentials = credentials
        self.base_url = get_base_url(credentials.region)
        self.timeout_s = timeout_s
        self.insight_limit = insight_limit

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _get(self, path: str, failure: str) -> Any:
        url = f"{self.base_url}{path}"
        logger.info("Fetching %s", url)
        req = urllib.request.Request(url, headers=self._headers(), method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace") if exc.fp is not None else ""
            logger.error("PostHog API error: status=%s reason=%s body=%s", exc.code, exc.reason, body)
            raise PostHogAPIError(f"{failure}: {exc.reason or 'API Error'}", status=exc.code, body=body) from exc
        except urllib.error.URLError as exc:
            logger.error("PostHog API unreachable at %s: %s", url, exc.reason)
            raise PostHogAPIError(f"{failure}: {exc.reason}") from exc
        except (TimeoutError, OSError) as exc:
            logger.error("PostHog API request to %s failed: %s", url, exc)
            raise PostHogAPIError(f"{failure}: {exc}") from exc

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            body = raw.decode("utf-8", errors="replace")
            raise PostHogAPIError(f"{failure}: response is not valid JSON", body=body) from exc

    def _project_id(self, project_id: Optional[str], action: str) -> str:
        resolved = project_id or self.credentials.project_id
        if not resolved:
            raise ValueError(f"Project ID is required to {action}")
        return urllib.parse.quote(str(resolved), safe="")

    def fetch_projects(self) -> List[PostHogProject]:
        data = self._get("/api/projects/", "Failed to fetch projects")
        return [self._to_project(item) for item in _results(data)]

    def fetch_insights(self, project_id: Optional[str] = None) -> List[PostHogInsight]:
        pid = self._project_id(project_id, "fetch insights")
        query = urllib.parse.urlencode({"limit": self.insight_limit})
        data = self._get(f"/api/projects/{pid}/insights/?{query}", "Failed to fetch insights")
        return [self._to_insight(item) for item in _results(data)]

    def fetch_insight(self, insight_id: str, project_id: Optional[str] = None) -> Dict[str, Any]:
        pid = self._project_id(project_id, "fetch insight data")
        quoted = urllib.parse.quote(str(insight_id), safe="")
        data = self._get(f"/api/projects/{pid}/insights/{quoted}", "Failed to fetch insight data")
        if not isinstance(data, dict):
            raise PostHogAPIError("Failed to fetch insight data: unexpected response shape")
        return data

    @staticmethod
    def _to_project(item: Dict[str, Any]) -> PostHogProject:
        return PostHogProject(
            id=str(item.get("id")),
            name=str(item.get("name") or ""),
            uuid=item.get("uuid"),
        )

    @staticmethod
    def _to_insight(item: Dict[str, Any]) -> PostHogInsight:
        filters = item.get("filters")
        return PostHogInsight(
            id=str(item.get("id")),
            name=str(item.get("name") or item.get("derived_name") or ""),
            description=item.get("description"),
            result=item.get("result"),
            filters=filters if isinstance(filters, dict) else {},
            created_at=item.get("created_at"),
            last_refresh=item.get("last_refresh"),
            type=item.get("type"),
        )


def _results(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    return [item for item in data.get("results") or [] if isinstance(item, dict)]


def build_client_from_env(config: Optional[PostHogConfig] = None) -> Optional[PostHogClient]:
    cfg = config or load_config().posthog
    if not cfg.api_key:
        return None
    credentials = PostHogCredentials(api_key=cfg.api_key, region=cfg.region, project_id=cfg.project_id)
    return PostHogClient(credentials, timeout_s=cfg.timeout_seconds, insight_limit=cfg.insight_list_limit)
