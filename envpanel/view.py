"""Rendering of a panel session.

``build_view`` turns the session into a plain dict (also the JSON API
response); ``render_html`` turns that dict into an HTML fragment.
"""
from html import escape
from typing import Any, Dict, List, Optional

from .controller import MODE_ERROR, MODE_LOADING, PanelSession
from .models import Environment, Release, release_lookup, version_key

TITLE = "Project Versions"
EMPTY_TEXT = "No environments configured yet. Add your first environment to get started!"
NO_VERSION_TEXT = "No version information available"
FORM_DESCRIPTION = "Configure the environment details and associate it with a project version."


def status_badge(release: Optional[Release]) -> Dict[str, str]:
    if release is not None and release.released:
        return {"text": "LIVE", "appearance": "success"}
    return {"text": "IN PROGRESS", "appearance": "inprogress"}


def _release_block(project_key: str, release: Release) -> Dict[str, Any]:
    return {
        "id": release.id,
        "name": release.name,
        "link": f"/projects/{project_key}/versions/{release.id}",
        "releaseDate": release.releaseDate or None,
        "descriptionLines": release.description.split("\n") if release.description else [],
    }


def _card(project_key: str, index: int, env: Environment, lookup: Dict[str, Release], saving: bool) -> Dict[str, Any]:
    release = lookup.get(version_key(env.fixVersionId))
    return {
        "index": index,
        "key": f"{env.name}-{index}",
        "name": env.name,
        "url": env.url,
        "status": status_badge(release),
        "release": _release_block(project_key, release) if release is not None else None,
        "placeholder": None if release is not None else NO_VERSION_TEXT,
        "actionsDisabled": saving,
    }


def _form_view(session: PanelSession) -> Optional[Dict[str, Any]]:
    form = session.form
    if not form.is_open:
        return None
    is_add = form.modal_type == "add"
    return {
        "type": form.modal_type,
        "title": "Add New Environment" if is_add else "Edit Environment",
        "description": FORM_DESCRIPTION,
        "editingIndex": form.editing_index,
        "name": form.name,
        "url": form.url,
        "fixVersion": form.fix_version.model_dump() if form.fix_version else None,
        "options": [o.model_dump() for o in session.version_options],
        "submitLabel": "Add Environment" if is_add else "Update Environment",
        "submitDisabled": (not form.is_form_valid) or session.saving,
        "cancelDisabled": session.saving,
        "error": form.error,
    }


def _delete_view(session: PanelSession) -> Optional[Dict[str, Any]]:
    d = session.delete
    if not d.is_open:
        return None
    return {
        "targetIndex": d.target_index,
        "targetName": d.target_name,
        "disabled": session.saving,
    }


def build_view(session: PanelSession) -> Dict[str, Any]:
    base: Dict[str, Any] = {"mode": session.mode, "title": TITLE, "projectKey": session.project_key}
    if session.mode == MODE_LOADING:
        base["text"] = "Loading project data..."
        return base
    if session.mode == MODE_ERROR:
        base["text"] = f"Error: {session.error}"
        return base

    lookup = release_lookup(session.releases)
    envs = session.store.environments
    cards: List[Dict[str, Any]] = [
        _card(session.project_key, i, env, lookup, session.saving) for i, env in enumerate(envs)
    ]
    base.update({
        "empty": EMPTY_TEXT if not envs else None,
        "cards": cards,
        "saving": session.saving,
        "addDisabled": session.saving,
        "message": session.message,
        "form": _form_view(session),
        "deleteConfirm": _delete_view(session),
    })
    return base


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


def _disabled(flag: bool) -> str:
    return " disabled" if flag else ""


def _card_html(c: Dict[str, Any]) -> str:
    status = c["status"]
    head = (
        f'<div class="card-head"><h3>{escape(c["name"])}</h3>'
        f'<span class="lozenge lozenge-{status["appearance"]}">{status["text"]}</span>'
        f'<button class="edit" data-index="{c["index"]}"{_disabled(c["actionsDisabled"])}>Edit</button>'
        f'<button class="delete" data-index="{c["index"]}"{_disabled(c["actionsDisabled"])}>Delete</button></div>'
    )
    url_html = f'<p class="env-url">{escape(c["url"])}</p>'

    rel = c["release"]
    if rel is None:
        details = f'<div class="details warning">{escape(c["placeholder"])}</div>'
    else:
        date_html = f'<span class="release-date">{escape(rel["releaseDate"])}</span>' if rel["releaseDate"] else ""
        desc_html = ""
        if rel["descriptionLines"]:
            lines = "".join(f"<p>{escape(line)}</p>" for line in rel["descriptionLines"])
            desc_html = f'<div class="description">{lines}</div>'
        details = (
            f'<div class="details"><h4>{escape(rel["name"])} '
            f'<a href="{escape(rel["link"])}">link</a></h4>{date_html}{desc_html}</div>'
        )
    return f'<div class="card" id="env-{c["index"]}">{head}{url_html}{details}</div>'


def _form_html(f: Dict[str, Any]) -> str:
    selected = version_key(f["fixVersion"]["value"]) if f["fixVersion"] else None
    opts = ['<option value="">Select a project version...</option>']
    for o in f["options"]:
        sel = " selected" if version_key(o["value"]) == selected else ""
        opts.append(f'<option value="{escape(str(o["value"]))}"{sel}>{escape(o["label"])}</option>')
    err = f'<p class="error">{escape(f["error"])}</p>' if f["error"] else ""
    return (
        f'<div class="modal" role="dialog"><h2>{escape(f["title"])}</h2><p>{escape(f["description"])}</p>'
        f'<label for="name">Environment Name*</label>'
        f'<input id="name" value="{escape(f["name"])}" placeholder="e.g., Development, Staging, Production" required>'
        f'<label for="url">Environment URL*</label>'
        f'<input id="url" value="{escape(f["url"])}" placeholder="e.g., https://myapp.com" required>'
        f'<label for="fixVersion">Project Version*</label><select id="fixVersion" required>{"".join(opts)}</select>'
        f'{err}<button class="cancel"{_disabled(f["cancelDisabled"])}>Cancel</button>'
        f'<button class="primary submit"{_disabled(f["submitDisabled"])}>{escape(f["submitLabel"])}</button></div>'
    )


def _delete_html(d: Dict[str, Any]) -> str:
    return (
        '<div class="modal" role="alertdialog"><h2>Confirm Delete</h2>'
        '<p>Are you sure you want to delete the environment:</p>'
        f'<p class="target"><strong>{escape(d["targetName"])}</strong></p>'
        '<p class="small">This action cannot be undone.</p>'
        f'<button class="cancel"{_disabled(d["disabled"])}>Cancel</button>'
        f'<button class="danger confirm"{_disabled(d["disabled"])}>Delete Environment</button></div>'
    )


def render_html(view: Dict[str, Any]) -> str:
    title = f'<h1>{escape(view["title"])}</h1>'
    if view["mode"] == MODE_LOADING:
        return f'<section class="panel loading">{title}<p>{escape(view["text"])}</p></section>'
    if view["mode"] == MODE_ERROR:
        return f'<section class="panel error">{title}<p class="error">{escape(view["text"])}</p></section>'

    parts: List[str] = []
    if view["empty"]:
        parts.append(f'<div class="empty info">{escape(view["empty"])}</div>')
    else:
        parts.append('<div class="cards">' + "".join(_card_html(c) for c in view["cards"]) + "</div>")
    parts.append(f'<button class="primary add"{_disabled(view["addDisabled"])}>Add Environment</button>')
    if view["message"]:
        parts.append(f'<div class="message error">{escape(view["message"])}</div>')
    if view["form"]:
        parts.append(_form_html(view["form"]))
    if view["deleteConfirm"]:
        parts.append(_delete_html(view["deleteConfirm"]))
    return '<section class="panel ready">' + "".join(parts) + "</section>"
