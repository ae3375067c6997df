import pytest

from envpanel.controller import (
    DELETE_FAILED_MESSAGE,
    MODE_ERROR,
    MODE_READY,
    SAVE_FAILED_MESSAGE,
    PanelSession,
)
from envpanel.errors import EnvironmentIndexError, JiraRequestError, PanelStateError

from conftest import FakeGateway


def test_load_populates_session(loaded_session):
    assert loaded_session.mode == MODE_READY
    assert len(loaded_session.releases) == 3
    assert [e.name for e in loaded_session.store.environments] == ["Dev", "Staging", "Prod"]


def test_load_without_project_key_enters_error():
    session = PanelSession(FakeGateway(), project_key=None)
    session.load()
    assert session.mode == MODE_ERROR
    assert session.error == "Unable to determine current project key"


def test_load_error_when_fetch_raises():
    class Broken(FakeGateway):
        def fetch_releases(self, project_key):
            raise RuntimeError("bridge unavailable")

    session = PanelSession(Broken(), project_key="ABC")
    session.load()
    assert session.mode == MODE_ERROR
    assert session.error == "bridge unavailable"


@pytest.mark.parametrize("name,url,pick,expected", [
    ("Dev", "https://dev", True, True),
    ("  ", "https://dev", True, False),
    ("Dev", "   ", True, False),
    ("Dev", "https://dev", False, False),
    ("", "", False, False),
])
def test_is_form_valid(loaded_session, name, url, pick, expected):
    form = loaded_session.form
    form.open_add()
    form.set_fields(name=name, url=url, fix_version="10001" if pick else None)
    assert form.is_form_valid is expected


def test_open_add_clears_fields(loaded_session):
    form = loaded_session.form
    form.open_edit(0)
    form.close()
    form.open_add()
    assert (form.name, form.url, form.fix_version) == ("", "", None)
    assert form.modal_type == "add"


def test_open_edit_prefills(loaded_session):
    form = loaded_session.form
    form.open_edit(1)
    assert form.modal_type == "edit"
    assert form.editing_index == 1
    assert (form.name, form.url) == ("Staging", "https://staging")
    assert form.fix_version.value == "10002"
    assert form.fix_version.label == "v2"


def test_open_edit_with_stale_version_leaves_selection_empty(three_releases):
    gw = FakeGateway(releases=three_releases, environments=[
        {"name": "Old", "url": "https://old", "fixVersionId": "99999"},
    ])
    session = PanelSession(gw, project_key="ABC")
    session.load()
    session.form.open_edit(0)
    assert session.form.fix_version is None
    assert session.form.is_form_valid is False


def test_set_fields_rejects_unknown_version(loaded_session):
    loaded_session.form.open_add()
    with pytest.raises(PanelStateError):
        loaded_session.form.set_fields(fix_version="nope")


def test_add_submit_persists_and_closes():
    gw = FakeGateway(releases=[{"id": 1, "name": "v1", "released": True}], environments=[])
    session = PanelSession(gw, project_key="ABC")
    session.load()

    session.form.open_add()
    session.form.set_fields(name=" Dev ", url="https://dev ", fix_version=1)
    assert session.form.submit() is True

    expected = [{"name": "Dev", "url": "https://dev", "fixVersionId": 1}]
    assert [e.model_dump() for e in session.store.environments] == expected
    assert gw.saved == [expected]
    assert session.form.is_open is False


def test_edit_submit_failure_keeps_modal_open(loaded_session):
    loaded_session.gateway.fail_save = JiraRequestError(500, "Internal Server Error")
    form = loaded_session.form
    form.open_edit(0)
    form.set_fields(name="Dev edited", url="https://dev2", fix_version="10002")

    assert form.submit() is False

    assert form.is_open
    assert form.error == SAVE_FAILED_MESSAGE
    assert loaded_session.saving is False
    assert (form.name, form.url, form.fix_version.value) == ("Dev edited", "https://dev2", "10002")
    assert loaded_session.store.get(0).name == "Dev"


def test_submit_invalid_form_is_rejected(loaded_session):
    loaded_session.form.open_add()
    with pytest.raises(PanelStateError):
        loaded_session.form.submit()


def test_delete_confirm_removes_middle(loaded_session):
    d = loaded_session.delete
    d.open(1)
    assert d.target_name == "Staging"
    assert d.confirm() is True
    assert [e.name for e in loaded_session.store.environments] == ["Dev", "Prod"]
    assert d.is_open is False
    assert loaded_session.gateway.saved[-1][1]["name"] == "Prod"


def test_delete_failure_sets_message(loaded_session):
    loaded_session.gateway.fail_save = JiraRequestError(503, "Service Unavailable")
    d = loaded_session.delete
    d.open(2)
    assert d.confirm() is False
    assert loaded_session.message == DELETE_FAILED_MESSAGE
    assert d.is_open is False
    assert len(loaded_session.store) == 3


def test_delete_cancel(loaded_session):
    loaded_session.delete.open(0)
    loaded_session.delete.close()
    assert loaded_session.delete.is_open is False
    assert loaded_session.delete.target_name == ""
    with pytest.raises(PanelStateError):
        loaded_session.delete.confirm()


def test_delete_cannot_open_while_form_open(loaded_session):
    loaded_session.form.open_edit(1)
    with pytest.raises(PanelStateError):
        loaded_session.delete.open(0)
    assert loaded_session.delete.is_open is False

    loaded_session.form.close()
    loaded_session.delete.open(0)
    assert loaded_session.delete.target_name == "Dev"


@pytest.mark.parametrize("mode", ["add", "edit"])
def test_form_cannot_open_while_delete_open(loaded_session, mode):
    loaded_session.delete.open(0)
    with pytest.raises(PanelStateError):
        if mode == "add":
            loaded_session.form.open_add()
        else:
            loaded_session.form.open_edit(1)
    assert loaded_session.form.is_open is False
    assert loaded_session.delete.target_index == 0


def test_edit_of_vanished_position_propagates_index_error(loaded_session):
    form = loaded_session.form
    form.open_edit(2)
    loaded_session.store.replace_all(loaded_session.store.environments[:2])

    with pytest.raises(EnvironmentIndexError):
        form.submit()

    assert form.error is None
    assert form.is_open
    assert loaded_session.saving is False
    assert loaded_session.gateway.saved == []
