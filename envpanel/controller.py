"""Panel session state: initial load, add/edit form, delete confirmation."""
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .errors import EnvironmentIndexError, MissingProjectKeyError, PanelStateError, SaveInProgressError
from .jira_client import JiraGateway
from .logging_utils import logger as root_logger
from .models import Environment, Release, VersionId, VersionOption, find_option, version_options
from .store import EnvironmentStore

logger = root_logger.child("controller")

SAVE_FAILED_MESSAGE = "Failed to save environment. Please try again."
DELETE_FAILED_MESSAGE = "Failed to delete environment. Please try again."

MODE_LOADING = "loading"
MODE_ERROR = "error"
MODE_READY = "ready"


class FormController:
    """Add/edit dialog. ``modal_type`` is None while closed."""

    def __init__(self, session: "PanelSession"):
        self.session = session
        self.modal_type: Optional[str] = None
        self.editing_index: Optional[int] = None
        self.name = ""
        self.url = ""
        self.fix_version: Optional[VersionOption] = None
        self.error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.modal_type is not None

    @property
    def is_form_valid(self) -> bool:
        return bool(self.name.strip() and self.url.strip() and self.fix_version is not None)

    def _clear(self) -> None:
        self.name = ""
        self.url = ""
        self.fix_version = None
        self.editing_index = None
        self.error = None

    def _ensure_exclusive(self) -> None:
        if self.session.delete.is_open:
            raise PanelStateError("delete confirmation is open")

    def open_add(self) -> None:
        self._ensure_exclusive()
        self._clear()
        self.modal_type = "add"

    def open_edit(self, index: int) -> None:
        self._ensure_exclusive()
        env = self.session.store.get(index)
        self._clear()
        self.modal_type = "edit"
        self.editing_index = index
        self.name = env.name
        self.url = env.url
        self.fix_version = find_option(self.session.version_options, env.fixVersionId)
        if self.fix_version is None and env.fixVersionId is not None:
            logger.warn("stale_version_reference", index=index, fix_version_id=env.fixVersionId)

    def set_fields(
        self,
        name: Optional[str] = None,
        url: Optional[str] = None,
        fix_version: Optional[VersionId] = None,
        clear_fix_version: bool = False,
    ) -> None:
        if not self.is_open:
            raise PanelStateError("form is not open")
        if name is not None:
            self.name = name
        if url is not None:
            self.url = url
        if clear_fix_version:
            self.fix_version = None
        elif fix_version is not None:
            opt = find_option(self.session.version_options, fix_version)
            if opt is None:
                raise PanelStateError(f"unknown version: {fix_version}")
            self.fix_version = opt

    def close(self) -> None:
        self._clear()
        self.modal_type = None

    def _record(self) -> Environment:
        return Environment(
            name=self.name.strip(),
            url=self.url.strip(),
            fixVersionId=self.fix_version.value,
        )

    def submit(self) -> bool:
        """Returns True when saved and closed; False leaves the form open with an error."""
        if not self.is_open:
            raise PanelStateError("form is not open")
        if not self.is_form_valid:
            raise PanelStateError("name, url and version are required")

        self.error = None
        store = self.session.store
        try:
            if self.modal_type == "add":
                store.add(self._record())
            else:
                store.update(self.editing_index, self._record())
        except (SaveInProgressError, EnvironmentIndexError):
            raise
        except Exception as e:
            logger.exception("environment_save_failed", e, modal=self.modal_type, index=self.editing_index)
            self.error = SAVE_FAILED_MESSAGE
            return False

        logger.info("environment_saved", modal=self.modal_type, index=self.editing_index)
        self.close()
        return True


class DeleteController:
    def __init__(self, session: "PanelSession"):
        self.session = session
        self.target_index: Optional[int] = None
        self.target_name = ""

    @property
    def is_open(self) -> bool:
        return self.target_index is not None

    def open(self, index: int) -> None:
        if self.session.form.is_open:
            raise PanelStateError("environment form is open")
        env = self.session.store.get(index)
        self.target_index = index
        self.target_name = env.name

    def close(self) -> None:
        self.target_index = None
        self.target_name = ""

    def confirm(self) -> bool:
        if not self.is_open:
            raise PanelStateError("delete confirmation is not open")
        index = self.target_index
        self.session.message = None
        try:
            self.session.store.remove(index)
            ok = True
            logger.info("environment_deleted", index=index)
        except (SaveInProgressError, EnvironmentIndexError):
            raise
        except Exception as e:
            logger.exception("environment_delete_failed", e, index=index)
            self.session.message = DELETE_FAILED_MESSAGE
            ok = False
        self.close()
        return ok


class PanelSession:
    """Everything one mounted panel holds in memory."""

    def __init__(self, gateway: JiraGateway, project_key: Optional[str] = None):
        self.gateway = gateway
        self.project_key = project_key or ""
        self.mode = MODE_LOADING
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.releases: List[Release] = []
        self.store = EnvironmentStore(self._persist)
        self.form = FormController(self)
        self.delete = DeleteController(self)

    def _persist(self, environments: List[Environment]) -> None:
        self.gateway.save_environments(self.project_key, environments)

    @property
    def saving(self) -> bool:
        return self.store.saving

    @property
    def version_options(self) -> List[VersionOption]:
        return version_options(self.releases)

    def load(self) -> None:
        """Fetch releases and environments concurrently, then leave ``loading``."""
        self.mode = MODE_LOADING
        self.error = None
        try:
            if not self.project_key:
                raise MissingProjectKeyError()
            with ThreadPoolExecutor(max_workers=2) as pool:
                releases_f = pool.submit(self.gateway.fetch_releases, self.project_key)
                envs_f = pool.submit(self.gateway.fetch_environments, self.project_key)
                releases = releases_f.result()
                environments = envs_f.result()
        except Exception as e:
            logger.exception("panel_load_failed", e, project=self.project_key)
            self.error = str(e)
            self.mode = MODE_ERROR
            return

        self.releases = list(releases or [])
        self.store.replace_all(environments or [])
        self.mode = MODE_READY
        logger.info("panel_loaded", project=self.project_key, releases=len(self.releases), environments=len(self.store))
