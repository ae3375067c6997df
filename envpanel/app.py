import threading
import time
import uuid
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from .config import PanelConfig, load_config_from_env
from .controller import PanelSession
from .errors import EnvironmentIndexError, PanelStateError, SaveInProgressError
from .jira_client import JiraGateway, resolve_project_key
from .logging_utils import logger as root_logger
from .models import FormFields
from .view import build_view, render_html

# Load .env if present (local dev). Hosted deployments set the env directly.
load_dotenv()

APP_NAME = "project-environments-panel"

logger = root_logger.child("app")


class MountRequest(BaseModel):
    projectKey: Optional[str] = None


class OpenFormRequest(BaseModel):
    mode: str = "add"
    index: Optional[int] = None


class OpenDeleteRequest(BaseModel):
    index: int


def get_cfg() -> PanelConfig:
    return load_config_from_env()


def make_gateway(cfg: PanelConfig) -> JiraGateway:
    return JiraGateway(cfg)


_sessions: Dict[str, PanelSession] = {}
_last_access: Dict[str, float] = {}
_sessions_lock = threading.Lock()

_now = time.monotonic

_startup_cfg = get_cfg()
root_logger.set_level(_startup_cfg.log_level)

app = FastAPI(title=APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_startup_cfg.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def _evict_sessions(cfg: PanelConfig) -> None:
    """Drop idle panels, then the least recently used ones beyond the cap.

    A panel with a save in flight is never dropped. Caller holds the lock.
    """
    now = _now()
    for sid in [s for s, t in _last_access.items() if now - t > cfg.session_ttl]:
        if not _sessions[sid].saving:
            _sessions.pop(sid)
            _last_access.pop(sid)
            logger.info("panel_evicted", session=sid, reason="idle")

    oldest_first = sorted(_last_access, key=_last_access.get)
    while len(_sessions) >= cfg.max_sessions and oldest_first:
        sid = oldest_first.pop(0)
        if _sessions[sid].saving:
            continue
        _sessions.pop(sid)
        _last_access.pop(sid)
        logger.info("panel_evicted", session=sid, reason="capacity")


def _get_session(sid: str) -> PanelSession:
    with _sessions_lock:
        s = _sessions.get(sid)
        if s is not None:
            _last_access[sid] = _now()
    if s is None:
        raise HTTPException(status_code=404, detail="Unknown panel session")
    return s


def _respond(sid: str, session: PanelSession) -> Dict[str, Any]:
    return {"sessionId": sid, "view": build_view(session)}


def _run(sid: str, action) -> Dict[str, Any]:
    session = _get_session(sid)
    try:
        action(session)
    except SaveInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (EnvironmentIndexError, PanelStateError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _respond(sid, session)


@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "service": APP_NAME}


@app.post("/api/panels")
def mount_panel(
    req: Optional[MountRequest] = None,
    projectKey: Optional[str] = None,
    x_project_key: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """Mount a panel: resolve the project from the host context and load it."""
    cfg = get_cfg()
    key = resolve_project_key([
        x_project_key,
        projectKey,
        req.projectKey if req else None,
        cfg.default_project_key,
    ])
    session = PanelSession(make_gateway(cfg), project_key=key)
    session.load()

    sid = uuid.uuid4().hex
    with _sessions_lock:
        _evict_sessions(cfg)
        _sessions[sid] = session
        _last_access[sid] = _now()
    logger.info("panel_mounted", session=sid, project=key or "", mode=session.mode)
    return _respond(sid, session)


@app.get("/api/panels/{sid}")
def get_panel(sid: str) -> Dict[str, Any]:
    return _respond(sid, _get_session(sid))


@app.get("/panels/{sid}", response_class=HTMLResponse)
def get_panel_html(sid: str) -> str:
    return render_html(build_view(_get_session(sid)))


@app.delete("/api/panels/{sid}")
def unmount_panel(sid: str) -> Dict[str, Any]:
    with _sessions_lock:
        removed = _sessions.pop(sid, None)
        _last_access.pop(sid, None)
    if removed is None:
        raise HTTPException(status_code=404, detail="Unknown panel session")
    return {"ok": True}


@app.post("/api/panels/{sid}/form/open")
def open_form(sid: str, req: OpenFormRequest) -> Dict[str, Any]:
    def action(s: PanelSession) -> None:
        if s.saving:
            raise SaveInProgressError()
        if req.mode == "add":
            s.form.open_add()
        elif req.mode == "edit":
            if req.index is None:
                raise PanelStateError("index is required for edit")
            s.form.open_edit(req.index)
        else:
            raise PanelStateError(f"unknown form mode: {req.mode}")

    return _run(sid, action)


@app.post("/api/panels/{sid}/form/fields")
def set_form_fields(sid: str, req: FormFields) -> Dict[str, Any]:
    return _run(sid, lambda s: s.form.set_fields(
        name=req.name,
        url=req.url,
        fix_version=req.fixVersion,
        clear_fix_version=req.clearFixVersion,
    ))


@app.post("/api/panels/{sid}/form/submit")
def submit_form(sid: str) -> Dict[str, Any]:
    return _run(sid, lambda s: s.form.submit())


@app.post("/api/panels/{sid}/form/close")
def close_form(sid: str) -> Dict[str, Any]:
    return _run(sid, lambda s: s.form.close())


@app.post("/api/panels/{sid}/delete/open")
def open_delete(sid: str, req: OpenDeleteRequest) -> Dict[str, Any]:
    def action(s: PanelSession) -> None:
        if s.saving:
            raise SaveInProgressError()
        s.delete.open(req.index)

    return _run(sid, action)


@app.post("/api/panels/{sid}/delete/confirm")
def confirm_delete(sid: str) -> Dict[str, Any]:
    return _run(sid, lambda s: s.delete.confirm())


@app.post("/api/panels/{sid}/delete/close")
def close_delete(sid: str) -> Dict[str, Any]:
    return _run(sid, lambda s: s.delete.close())
