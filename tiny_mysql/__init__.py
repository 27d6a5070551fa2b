from __future__ import annotations

import dataclasses
import logging
import os
import shutil
import signal
import subprocess
from pathlib import Path
from types import TracebackType
from typing import Type

import pymysql

from . import poll
from .db_config import DBConfig
from .env import find_program, probe_defaults
from .errors import (
    CleanupFailed,
    ExecutableNotFound,
    LaunchFailed,
    PidReadFailed,
    ProbeFailed,
    SchemaBootstrapFailed,
    SchemaCreateFailed,
    ShutdownTimeout,
    SignalFailed,
    StartupTimeout,
    TinyMySQLError,
    TooManyWorkspaces,
    WorkspaceInitFailed,
)
from .server import Server
from .workspace import Workspace, init_workspace, make_temp_dir

__all__ = [
    "TinyMySQL",
    "DBConfig",
    "Server",
    "TinyMySQLError",
    "ExecutableNotFound",
    "ProbeFailed",
    "TooManyWorkspaces",
    "WorkspaceInitFailed",
    "SchemaBootstrapFailed",
    "LaunchFailed",
    "StartupTimeout",
    "PidReadFailed",
    "SchemaCreateFailed",
    "SignalFailed",
    "ShutdownTimeout",
    "CleanupFailed",
]

logger = logging.getLogger(__name__)

LOG_TAIL_CHARS = 2000


def _pid_written(pid_file: Path) -> bool:
    try:
        return pid_file.stat().st_size > 0
    except FileNotFoundError:
        return False


class TinyMySQL:
    """
    A throwaway mysqld bound to a private unix socket.

    The server process and its workspace are only released by ``destroy``
    (or leaving the ``with`` block). Dropping the object without destroying
    it leaks both.
    """

    def __init__(self, config: DBConfig | None = None):
        self.config = config or DBConfig()
        self.mysqld = find_program(self.config.mysqld)
        self.install_db_bin = find_program(self.config.install_db)
        self.defaults = probe_defaults(self.mysqld)
        self.server: Server | None = None
        self._process: subprocess.Popen | None = None

    def _handle_result(self, result: subprocess.CompletedProcess) -> str:
        """
        Handle the result of a mysql_install_db run.
        :param result: The finished mysql_install_db process.
        :return: Its combined output.
        """
        if result.returncode != 0:
            logger.error(result.stdout)
            raise SchemaBootstrapFailed(
                f"mysql_install_db failed with code {result.returncode}",
                output=result.stdout,
            )
        logger.debug(result.stdout)
        return result.stdout

    def _defaults_args(self) -> list[str]:
        """
        Build the --basedir argument shared by mysql_install_db and mysqld.
        :return: The arguments, empty when mysqld reported no basedir.
        """
        args = []
        if self.defaults.basedir is not None:
            args.append(f"--basedir={self.defaults.basedir}")
        return args

    def install_db(self, workspace: Workspace) -> str:
        """
        Initialize the data directory using mysql_install_db.
        :return: The output of mysql_install_db.
        """
        logger.debug(f"Initializing database at {workspace.data_dir}")
        try:
            result = subprocess.run(
                [
                    str(self.install_db_bin),
                    "--no-defaults",
                    *self._defaults_args(),
                    f"--datadir={workspace.data_dir}",
                ],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
            )
        except OSError as e:
            raise SchemaBootstrapFailed(
                f"Can't run {self.install_db_bin}: {e}", output=""
            ) from e
        return self._handle_result(result)

    def launch(self, workspace: Workspace) -> subprocess.Popen:
        """
        Start mysqld in the background without waiting for it.
        :return: The mysqld process.
        """
        args = [str(self.mysqld), "--no-defaults", "--skip-networking"]
        args += self._defaults_args()
        if self.defaults.lc_messages_dir is not None:
            args.append(f"--lc-messages-dir={self.defaults.lc_messages_dir}")
        args += [
            f"--datadir={workspace.data_dir}",
            f"--tmpdir={workspace.tmp_dir}",
            f"--pid-file={workspace.pid_file}",
            f"--socket={workspace.socket}",
        ]
        logger.debug(f"Starting mysqld in {workspace.root}")
        try:
            with open(workspace.log_file, "ab") as log:
                return subprocess.Popen(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                )
        except OSError as e:
            raise LaunchFailed(f"Can't start {self.mysqld}: {e}") from e

    def _exited(self) -> bool:
        return self._process is not None and self._process.poll() is not None

    def _log_tail(self, workspace: Workspace) -> str:
        try:
            return workspace.log_file.read_text(errors="replace")[-LOG_TAIL_CHARS:]
        except OSError:
            return ""

    def wait_until_ready(self, workspace: Workspace) -> int:
        """
        Wait for mysqld to write its pid file.
        :return: The pid of mysqld.
        """
        pid_file = workspace.pid_file
        poll.wait_for(
            lambda: _pid_written(pid_file) or self._exited(),
            f"mysqld to write {pid_file}",
        )
        if not pid_file.exists():
            if self._exited():
                reason = f"mysqld exited with code {self._process.returncode}"
            else:
                reason = "Looks like mysqld has not started"
            raise StartupTimeout(f"{reason}:\n{self._log_tail(workspace)}")
        try:
            return int(pid_file.read_text().strip())
        except (OSError, ValueError) as e:
            raise PidReadFailed(f"Can't read the pid from {pid_file}: {e}") from e

    def create_database(self) -> None:
        """
        Create the scratch database through an administrative connection.
        """
        server = self.server
        logger.debug(f"Creating database {server.database}")
        try:
            connection = pymysql.connect(
                unix_socket=str(server.socket),
                user=server.user,
                password="",
            )
        except pymysql.Error as e:
            raise SchemaCreateFailed(f"Can't connect to mysqld: {e}") from e
        try:
            with connection.cursor() as cursor:
                cursor.execute(
                    f"CREATE DATABASE `{server.database}` "
                    f"CHARACTER SET {server.charset}"
                )
        except pymysql.Error as e:
            raise SchemaCreateFailed(
                f"Can't create database {server.database}: {e}"
            ) from e
        finally:
            connection.close()

    def start(self) -> Server:
        """
        Bootstrap a mysqld instance.

        On failure the raised error carries the partial handle in ``server``;
        ``destroy`` must still be called to release what was created.
        :return: The handle of the ready server.
        """
        if self.server is not None:
            raise RuntimeError(
                f"mysqld was already started in {self.server.work_dir}, "
                f"use a new TinyMySQL for another server"
            )
        try:
            root = make_temp_dir(self.config.workspace_prefix, self.config.temp_root)
            workspace = Workspace(root=root)
            self.server = Server(
                work_dir=root,
                pid_file=workspace.pid_file,
                socket=workspace.socket,
                database=self.config.database,
                user=self.config.user,
                charset=self.config.charset,
            )
            init_workspace(root)
            self.install_db(workspace)
            self._process = self.launch(workspace)
            pid = self.wait_until_ready(workspace)
            self.server = dataclasses.replace(self.server, pid=pid)
            self.server = dataclasses.replace(self.server, dsn=self.server.url())
            self.create_database()
        except TinyMySQLError as e:
            e.server = self.server
            raise
        logger.info(f"mysqld {self.server.pid} is ready at {self.server.socket}")
        return self.server

    def status(self) -> Server | None:
        """
        Get the handle of the server.
        :return: The latest handle, None before start was called.
        """
        return self.server

    def _signal(self, sig: int) -> None:
        try:
            os.kill(self.server.pid, sig)
        except OSError as e:
            raise SignalFailed(
                f"Can't signal mysqld {self.server.pid}: {e}",
            ) from e

    def _stopped(self) -> bool:
        if self.server.pid_file.exists():
            return False
        return self._process is None or self._exited()

    def _stop_unready(self) -> None:
        if self._process is None or self._exited():
            return
        logger.info(f"Terminating mysqld {self._process.pid} which never became ready")
        self._process.terminate()
        try:
            self._process.wait(timeout=poll.POLL_INTERVAL * poll.POLL_ATTEMPTS)
        except subprocess.TimeoutExpired as e:
            raise ShutdownTimeout(
                f"mysqld {self._process.pid} does not want to stop"
            ) from e

    def stop(self) -> None:
        """
        Send SIGTERM to mysqld and wait for it to remove its pid file.
        """
        server = self.server
        if server.pid == 0:
            self._stop_unready()
            return
        if self._exited():
            logger.debug(f"mysqld {server.pid} has already exited")
            return
        if not server.running:
            logger.debug(f"mysqld {server.pid} is not running")
            return
        logger.info(f"Stopping mysqld {server.pid}")
        self._signal(signal.SIGTERM)
        if not poll.wait_for(self._stopped, f"mysqld {server.pid} to exit"):
            raise ShutdownTimeout(
                f"Looks like mysqld {server.pid} does not want to stop, "
                f"its files are kept in {server.work_dir}"
            )

    def kill(self) -> None:
        """
        Kill mysqld with SIGKILL. The workspace is left in place.
        """
        if self.server is None or self.server.pid == 0 or self._exited():
            return
        logger.info(f"Killing mysqld {self.server.pid}")
        self._signal(signal.SIGKILL)
        if self._process is not None:
            self._process.wait()

    def _cleanup(self) -> None:
        """
        Remove the workspace of the server.
        """
        work_dir = self.server.work_dir
        if not self.config.delete_on_exit:
            logger.debug(f"Keeping workspace {work_dir}")
            return
        logger.debug(f"Cleaning up workspace {work_dir}")
        try:
            shutil.rmtree(work_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CleanupFailed(f"Can't remove {work_dir}: {e}") from e

    def destroy(self) -> None:
        """
        Stop mysqld and remove its workspace.

        Safe on a handle whose bootstrap failed part way and on one that was
        already destroyed.
        """
        if self.server is None:
            return
        try:
            self.stop()
            self._cleanup()
        except TinyMySQLError as e:
            e.server = self.server
            raise

    def __enter__(self) -> TinyMySQL:
        """
        Start the mysql server and create the scratch database.
        :return:
        """
        try:
            self.start()
        except TinyMySQLError:
            try:
                self.destroy()
            except TinyMySQLError as e:
                logger.exception("Failed to clean up after a failed start", exc_info=e)
            raise
        return self

    def __exit__(
        self,
        exc_type: Type[Exception] | None,
        exc_val: Exception | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """
        Stop the mysql server and remove its workspace.
        :param exc_type: The type of exception that was raised.
        :param exc_val: The exception that was raised.
        :param exc_tb: The traceback of the exception that was raised.
        :return:
        """
        self.destroy()
