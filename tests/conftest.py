"""
Shared fixtures for the environments panel test suite.
"""
import os
import sys

import pytest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Keep a developer's .env / shell from leaking into tests
for _name in ("JIRA_BASE", "JIRA_URL", "JIRA_EMAIL", "JIRA_API_TOKEN", "JIRA_TOKEN",
              "JIRA_PROJECT_KEY", "ENVIRONMENTS_PROPERTY_KEY", "PANEL_CORS_ORIGINS"):
    os.environ[_name] = ""
os.environ["LOG_LEVEL"] = "ERROR"


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, reason="OK", text=None):
        self.status_code = status_code
        self._json = json_body
        self.reason = reason
        self.text = text if text is not None else ("" if json_body is None else "json")
        self.content = b"" if json_body is None else b"x"

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class FakeGateway:
    """In-memory stand-in for JiraGateway recording saves."""

    def __init__(self, releases=None, environments=None, fail_save=None):
        from envpanel.models import Environment, Release

        self.releases = [Release.model_validate(r) for r in (releases or [])]
        self.environments = [Environment.model_validate(e) for e in (environments or [])]
        self.fail_save = fail_save
        self.saved = []

    def fetch_releases(self, project_key):
        return list(self.releases)

    def fetch_environments(self, project_key):
        return list(self.environments)

    def save_environments(self, project_key, environments):
        if self.fail_save is not None:
            raise self.fail_save
        self.saved.append([e.model_dump() for e in environments])
        return ""


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def cfg():
    from envpanel.config import PanelConfig

    return PanelConfig(
        jira_base="https://example.atlassian.net",
        jira_email="dev@example.com",
        jira_token="secret-token-value",
    )


@pytest.fixture
def three_releases():
    return [
        {"id": "10001", "name": "v1", "released": True, "releaseDate": "2024-01-01", "description": "a\nb"},
        {"id": "10002", "name": "v2", "released": False},
        {"id": "10003", "name": "v3", "released": False},
    ]


@pytest.fixture
def three_envs():
    return [
        {"name": "Dev", "url": "https://dev", "fixVersionId": "10001"},
        {"name": "Staging", "url": "https://staging", "fixVersionId": "10002"},
        {"name": "Prod", "url": "https://prod", "fixVersionId": "10003"},
    ]


@pytest.fixture
def loaded_session(three_releases, three_envs):
    """A ready PanelSession over a FakeGateway with three environments."""
    from envpanel.controller import PanelSession

    gw = FakeGateway(releases=three_releases, environments=three_envs)
    session = PanelSession(gw, project_key="ABC")
    session.load()
    return session
