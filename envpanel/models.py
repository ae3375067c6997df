from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

VersionId = Union[int, str]


class Release(BaseModel):
    """A project version as returned by Jira. Never mutated here."""

    id: VersionId
    name: str = ""
    description: Optional[str] = None
    archived: bool = False
    released: bool = False
    releaseDate: Optional[str] = None
    projectId: Optional[VersionId] = None


class Environment(BaseModel):
    name: str
    url: str
    fixVersionId: Optional[VersionId] = None


class VersionOption(BaseModel):
    label: str
    value: VersionId


def version_key(value: Any) -> Optional[str]:
    # Jira sends version ids as strings, stored properties may hold ints.
    if value is None or value == "":
        return None
    return str(value)


def version_options(releases: List[Release]) -> List[VersionOption]:
    return [VersionOption(label=r.name, value=r.id) for r in releases]


def release_lookup(releases: List[Release]) -> Dict[str, Release]:
    return {version_key(r.id): r for r in releases}


def find_option(options: List[VersionOption], value: Any) -> Optional[VersionOption]:
    key = version_key(value)
    if key is None:
        return None
    for opt in options:
        if version_key(opt.value) == key:
            return opt
    return None


class FormFields(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    fixVersion: Optional[VersionId] = Field(default=None, description="Release id of the selected option")
    clearFixVersion: bool = False
