from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .server import Server


class TinyMySQLError(Exception):
    """
    Base class for every failure raised while managing a mysqld instance.

    ``server`` holds the (possibly partial) handle of the instance the error
    belongs to, so the caller can still tear it down.
    """

    server: Server | None = None


class ExecutableNotFound(TinyMySQLError):
    pass


class ProbeFailed(TinyMySQLError):
    pass


class TooManyWorkspaces(TinyMySQLError):
    pass


class WorkspaceInitFailed(TinyMySQLError):
    pass


class SchemaBootstrapFailed(TinyMySQLError):
    """
    mysql_install_db failed. ``output`` holds its combined stdout/stderr.
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class LaunchFailed(TinyMySQLError):
    pass


class StartupTimeout(TinyMySQLError):
    pass


class PidReadFailed(TinyMySQLError):
    pass


class SchemaCreateFailed(TinyMySQLError):
    pass


class SignalFailed(TinyMySQLError):
    pass


class ShutdownTimeout(TinyMySQLError):
    pass


class CleanupFailed(TinyMySQLError):
    pass
