from __future__ import annotations

import dataclasses
from pathlib import Path
from urllib.parse import quote, urlencode


@dataclasses.dataclass(frozen=True)
class Server:
    """
    The handle of one temporary mysql server.

    ``pid`` is 0 until the server has written its pid file.
    """

    work_dir: Path
    pid_file: Path
    socket: Path
    database: str
    user: str
    charset: str
    pid: int = 0
    dsn: str = ""

    @property
    def running(self) -> bool:
        return self.pid_file.exists()

    def connect_kwargs(self) -> dict:
        """
        Keyword arguments for ``pymysql.connect`` reaching the scratch database.
        """
        return {
            "unix_socket": str(self.socket),
            "user": self.user,
            "password": "",
            "database": self.database,
            "charset": self.charset,
        }

    def url(self) -> str:
        query = urlencode({"unix_socket": str(self.socket), "charset": self.charset})
        return f"mysql+pymysql://{quote(self.user)}@localhost/{quote(self.database)}?{query}"
