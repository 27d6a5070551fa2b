from __future__ import annotations

import dataclasses
import logging
import os
import re
import subprocess
from pathlib import Path

from .errors import ExecutableNotFound, ProbeFailed

logger = logging.getLogger(__name__)

FALLBACK_BIN_DIRS = (
    "/usr/local/sbin",
    "/usr/local/bin",
    "/usr/sbin",
    "/usr/bin",
    "/sbin",
    "/bin",
)


@dataclasses.dataclass(frozen=True)
class MySQLDefaults:
    """
    The settings mysqld would start with, as reported by --print-defaults.
    """

    basedir: str | None
    lc_messages_dir: str | None


def get_search_path() -> list[Path]:
    """
    Get the directories searched for mysql binaries.

    :return: The PATH entries followed by the usual system binary directories.
    """
    paths = [Path(p) for p in os.environ.get("PATH", "").split(":") if p]
    return paths + [Path(p) for p in FALLBACK_BIN_DIRS]


def find_program(name: str) -> Path:
    """
    Find an executable on the search path.

    :param name: The name of the executable.
    :return: The absolute path of the first match.
    """
    for directory in get_search_path():
        candidate = directory.absolute() / name
        if candidate.is_file():
            logger.debug(f"Found {name} at {candidate}")
            return candidate
    raise ExecutableNotFound(f"Can't find the '{name}' program.")


def print_defaults(mysqld: Path) -> str:
    """
    Run mysqld --print-defaults.

    :param mysqld: The path of the mysqld binary.
    :return: The standard output of mysqld.
    """
    try:
        result = subprocess.run(
            [str(mysqld), "--print-defaults"],
            universal_newlines=True,
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ProbeFailed(f"Can't run {mysqld} --print-defaults: {e}") from e
    if result.returncode != 0:
        logger.error(result.stderr)
        raise ProbeFailed(
            f"{mysqld} --print-defaults failed with code {result.returncode}: "
            f"{result.stderr}"
        )
    return result.stdout


def extract_default(defaults: str, name: str) -> str | None:
    """
    Extract the value of a --name=value token from --print-defaults output.
    """
    match = re.search(rf"(?:^|\s)--{re.escape(name)}=(\S*)", defaults)
    return match.group(1) if match else None


def probe_defaults(mysqld: Path) -> MySQLDefaults:
    defaults = print_defaults(mysqld)
    probed = MySQLDefaults(
        basedir=extract_default(defaults, "basedir"),
        lc_messages_dir=extract_default(defaults, "lc-messages-dir"),
    )
    logger.debug(f"mysqld defaults: {probed}")
    return probed
