"""Jira gateway: project versions and the environments project property.

Reads never raise: any failure degrades to fixed sample data so the panel
always has something to show. The write raises on any failure because the
store has already applied the change in memory.
"""
import urllib.parse
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from .config import PanelConfig
from .errors import JiraRequestError
from .logging_utils import logger as root_logger
from .models import Environment, Release

logger = root_logger.child("gateway")


def fallback_releases() -> List[Release]:
    return [
        Release(
            id=10001,
            name="Version 1.0.0",
            description="Initial release",
            archived=False,
            released=False,
            releaseDate="2024-12-01",
            projectId=10000,
        ),
        Release(
            id=10002,
            name="Version 1.1.0",
            description="Feature update\nBug fixes",
            archived=False,
            released=True,
            releaseDate="2024-10-15",
            projectId=10000,
        ),
    ]


def fallback_environments() -> List[Environment]:
    return [
        Environment(name="Development", url="https://dev.myapp.com", fixVersionId=10001),
        Environment(name="Staging", url="https://staging.myapp.com", fixVersionId=10002),
        Environment(name="Production", url="https://myapp.com", fixVersionId=10002),
    ]


def safe_json(resp: requests.Response) -> Any:
    try:
        return resp.json() if resp.content else {}
    except ValueError:
        return {"_raw": resp.text}


class JiraGateway:
    def __init__(self, cfg: PanelConfig):
        self.cfg = cfg

    def _url(self, path: str) -> str:
        return f"{self.cfg.jira_base}{path}"

    def _project_path(self, project_key: str, suffix: str) -> str:
        return f"/rest/api/3/project/{urllib.parse.quote(project_key, safe='')}{suffix}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = {"Accept": "application/json"}
        headers.update(kwargs.pop("headers", {}) or {})
        auth = (self.cfg.jira_email, self.cfg.jira_token) if self.cfg.has_credentials else None
        return requests.request(
            method,
            self._url(path),
            headers=headers,
            auth=auth,
            timeout=self.cfg.timeout,
            **kwargs,
        )

    def fetch_releases(self, project_key: str) -> List[Release]:
        path = self._project_path(project_key, "/versions")
        try:
            r = self._request("GET", path)
            if not r.ok:
                logger.warn("releases_fetch_failed", project=project_key, status=r.status_code, reason=r.reason)
                return fallback_releases()
            body = safe_json(r)
            if not isinstance(body, list):
                logger.warn("releases_unexpected_payload", project=project_key, payload_type=type(body).__name__)
                return fallback_releases()
            releases = [Release.model_validate(item) for item in body]
            logger.debug("releases_fetched", project=project_key, count=len(releases))
            return releases
        except (requests.RequestException, ValidationError) as e:
            logger.exception("releases_fetch_error", e, project=project_key)
            return fallback_releases()

    def fetch_environments(self, project_key: str) -> List[Environment]:
        path = self._project_path(project_key, f"/properties/{self.cfg.property_key}")
        try:
            r = self._request("GET", path)
            if not r.ok:
                logger.warn("environments_fetch_failed", project=project_key, status=r.status_code, reason=r.reason)
                return fallback_environments()
            body = safe_json(r)
            value = body.get("value") if isinstance(body, dict) else None
            if value is None:
                logger.info("environments_property_empty", project=project_key)
                return fallback_environments()
            if not isinstance(value, list):
                logger.warn("environments_unexpected_payload", project=project_key, payload_type=type(value).__name__)
                return fallback_environments()
            envs = [Environment.model_validate(item) for item in value]
            logger.debug("environments_fetched", project=project_key, count=len(envs))
            return envs
        except (requests.RequestException, ValidationError) as e:
            logger.exception("environments_fetch_error", e, project=project_key)
            return fallback_environments()

    def save_environments(self, project_key: str, environments: List[Environment]) -> str:
        """Replace the whole environments property. Raises on any failure."""
        path = self._project_path(project_key, f"/properties/{self.cfg.property_key}")
        payload: List[Dict[str, Any]] = [e.model_dump() for e in environments]
        try:
            r = self._request(
                "PUT",
                path,
                headers={"Content-Type": "application/json"},
                json=payload,
            )
            if not r.ok:
                raise JiraRequestError(r.status_code, r.reason, body=r.text[:200])
            logger.info("environments_saved", project=project_key, count=len(payload))
            return r.text
        except (requests.RequestException, JiraRequestError) as e:
            logger.exception("environments_save_error", e, project=project_key)
            raise


def resolve_project_key(candidates: List[Optional[str]]) -> Optional[str]:
    """First non-blank key among host-supplied values, in priority order."""
    for c in candidates:
        k = (c or "").strip()
        if k:
            return k
    return None
