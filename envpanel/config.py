import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_PROPERTY_KEY = "environments"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_SESSION_TTL_SECONDS = 3600.0
DEFAULT_MAX_SESSIONS = 500
DEFAULT_CORS_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


@dataclass
class PanelConfig:
    jira_base: str = ""
    jira_email: str = ""
    jira_token: str = ""
    default_project_key: str = ""
    property_key: str = DEFAULT_PROPERTY_KEY
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    session_ttl: float = DEFAULT_SESSION_TTL_SECONDS
    max_sessions: int = DEFAULT_MAX_SESSIONS

    @property
    def has_credentials(self) -> bool:
        return bool(self.jira_email and self.jira_token)


def _env_any(*names: str) -> str:
    for n in names:
        v = (os.getenv(n) or "").strip()
        if v:
            return v
    return ""


def normalize_base(base: str) -> str:
    b = (base or "").strip().rstrip("/")
    if b and not b.startswith("http"):
        b = f"https://{b}"
    return b


def _parse_positive(raw: str, default, cast=float):
    try:
        v = cast(raw)
    except (TypeError, ValueError):
        return default
    return v if v > 0 else default


def load_config_from_env() -> PanelConfig:
    origins_raw = _env_any("PANEL_CORS_ORIGINS")
    origins = [o.strip() for o in origins_raw.split(",") if o.strip()] if origins_raw else list(DEFAULT_CORS_ORIGINS)
    return PanelConfig(
        jira_base=normalize_base(_env_any("JIRA_BASE", "JIRA_URL")),
        jira_email=_env_any("JIRA_EMAIL"),
        jira_token=_env_any("JIRA_API_TOKEN", "JIRA_TOKEN"),
        default_project_key=_env_any("JIRA_PROJECT_KEY"),
        property_key=_env_any("ENVIRONMENTS_PROPERTY_KEY") or DEFAULT_PROPERTY_KEY,
        timeout=_parse_positive(_env_any("JIRA_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS),
        cors_origins=origins,
        log_level=(_env_any("LOG_LEVEL") or "INFO").upper(),
        session_ttl=_parse_positive(_env_any("PANEL_SESSION_TTL_SECONDS"), DEFAULT_SESSION_TTL_SECONDS),
        max_sessions=_parse_positive(_env_any("PANEL_MAX_SESSIONS"), DEFAULT_MAX_SESSIONS, cast=int),
    )
