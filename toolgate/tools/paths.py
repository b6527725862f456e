"""Workspace path confinement."""

from pathlib import Path
from typing import Union

from toolgate.gateway.errors import PathOutsideWorkspaceError


def resolve_in_workspace(root: Path, path: Union[str, Path] = ".") -> Path:
    """
    Resolve ``path`` against ``root`` and refuse anything outside it.

    Absolute paths are accepted only when they land inside the root.
    Symlinks are followed before the check, so a link pointing out of the
    workspace is rejected as well. No file is opened here.
    """
    root = Path(root).resolve()
    candidate = (root / Path(path)).resolve()
    if candidate != root and root not in candidate.parents:
        raise PathOutsideWorkspaceError(str(path))
    return candidate


def relative_to_workspace(root: Path, path: Path) -> str:
    """Workspace-relative POSIX path for display."""
    try:
        return Path(path).resolve().relative_to(Path(root).resolve()).as_posix() or "."
    except ValueError:
        return str(path)
