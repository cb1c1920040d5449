from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Principal:
    """An authenticated account acting on the API."""

    id: str


@dataclass(frozen=True)
class Anonymous:
    """A caller without credentials."""

    id: None = None


ANONYMOUS = Anonymous()

Viewer = Union[Principal, Anonymous]


def viewer_id(viewer: Optional[Viewer]) -> Optional[str]:
    """Return the account id behind a viewer, or None when anonymous."""
    if isinstance(viewer, Principal):
        return viewer.id
    return None
