from __future__ import annotations

import dataclasses
import logging
import os
import tempfile
from pathlib import Path

from .errors import TooManyWorkspaces, WorkspaceInitFailed

logger = logging.getLogger(__name__)

MAX_WORKSPACES = 10000


@dataclasses.dataclass(frozen=True)
class Workspace:
    """
    The private directory tree of one mysql server.
    """

    root: Path

    @property
    def data_dir(self) -> Path:
        return self.root / "data"

    @property
    def tmp_dir(self) -> Path:
        return self.root / "tmp"

    @property
    def socket(self) -> Path:
        return self.root / "sock"

    @property
    def pid_file(self) -> Path:
        return self.root / "pid"

    @property
    def log_file(self) -> Path:
        return self.root / "mysqld.log"


def make_temp_dir(prefix: str = "tmpmysql_", temp_root: Path | None = None) -> Path:
    """
    Create a fresh, owner-only directory named <prefix><NNNN> in the temp root.

    :param prefix: The name prefix of the directory.
    :param temp_root: Where to create it, the system temp directory by default.
    :return: The absolute path of the new directory.
    """
    root = Path(temp_root or tempfile.gettempdir()).absolute()
    for i in range(MAX_WORKSPACES):
        candidate = root / f"{prefix}{i:04d}"
        try:
            os.mkdir(candidate, 0o700)
        except FileExistsError:
            continue
        except OSError as e:
            raise WorkspaceInitFailed(f"Can't create {candidate}: {e}") from e
        logger.debug(f"Allocated workspace {candidate}")
        return candidate
    raise TooManyWorkspaces(
        f"Too many temporary directories were already created in {root}"
    )


def init_workspace(root: Path) -> Workspace:
    """
    Create the data and tmp directories of a workspace.
    """
    workspace = Workspace(root=root)
    for directory in (workspace.data_dir, workspace.tmp_dir):
        try:
            os.mkdir(directory, 0o700)
        except OSError as e:
            raise WorkspaceInitFailed(f"Can't create {directory}: {e}") from e
    return workspace
