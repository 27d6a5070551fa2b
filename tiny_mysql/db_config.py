from __future__ import annotations

import dataclasses
from pathlib import Path


@dataclasses.dataclass(frozen=True)
class DBConfig:
    """
    The configuration of a temporary mysql server.
    """

    mysqld: str = "mysqld"
    install_db: str = "mysql_install_db"
    database: str = "test"
    user: str = "root"
    charset: str = "utf8mb4"
    workspace_prefix: str = "tmpmysql_"
    temp_root: Path | None = None
    delete_on_exit: bool = True
