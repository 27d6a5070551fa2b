"""Shared test fixtures.

The fake mysqld understands --print-defaults and --pid-file=, and its
behaviour after launch is picked with FAKE_MYSQLD_MODE:

    (unset)  write the pid file, remove it and exit on SIGTERM
    stuck    write the pid file, ignore SIGTERM
    silent   never write the pid file
    badpid   write garbage to the pid file
    crash    exit right away with code 3
    slowpid  create an empty pid file, fill it in a moment later
"""

import os
import stat
from pathlib import Path

import pytest

from tiny_mysql import poll
from tiny_mysql.db_config import DBConfig

FAKE_MYSQLD = """#!/bin/sh
pidfile=
for arg in "$@"; do
    case "$arg" in
        --print-defaults)
            echo "mysqld would have been started with the following arguments:"
            echo "--basedir=/opt/fake-mysql --lc-messages-dir=/opt/fake-mysql/share --user=mysql"
            exit 0
            ;;
        --pid-file=*)
            pidfile="${arg#--pid-file=}"
            ;;
    esac
done
case "$FAKE_MYSQLD_MODE" in
    crash)
        echo "fake mysqld crashed" >&2
        exit 3
        ;;
    slowpid)
        trap 'rm -f "$pidfile"; exit 0' TERM
        : > "$pidfile"
        sleep 0.3
        echo $$ > "$pidfile"
        ;;
    silent)
        ;;
    badpid)
        echo "not-a-pid" > "$pidfile.new" && mv "$pidfile.new" "$pidfile"
        ;;
    stuck)
        trap '' TERM
        echo $$ > "$pidfile.new" && mv "$pidfile.new" "$pidfile"
        ;;
    *)
        trap 'rm -f "$pidfile"; exit 0' TERM
        echo $$ > "$pidfile.new" && mv "$pidfile.new" "$pidfile"
        ;;
esac
while true; do
    sleep 0.05
done
"""

FAKE_INSTALL_DB = """#!/bin/sh
if [ -n "$FAKE_INSTALL_DB_FAIL" ]; then
    echo "boom: can't create system tables"
    exit 1
fi
echo "Installing MySQL system tables... OK"
"""


def write_script(path: Path, text: str) -> Path:
    path.write_text(text)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bin(tmp_path, monkeypatch):
    """Put fake mysqld and mysql_install_db first on PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    write_script(bin_dir / "mysqld", FAKE_MYSQLD)
    write_script(bin_dir / "mysql_install_db", FAKE_INSTALL_DB)
    monkeypatch.setenv("PATH", f"{bin_dir}:{os.environ.get('PATH', '')}")
    monkeypatch.delenv("FAKE_MYSQLD_MODE", raising=False)
    monkeypatch.delenv("FAKE_INSTALL_DB_FAIL", raising=False)
    return bin_dir


@pytest.fixture
def fast_poll(monkeypatch):
    """Shrink the polling interval so timeouts hit in a fraction of a second."""
    monkeypatch.setattr(poll, "POLL_INTERVAL", 0.01)


@pytest.fixture
def config(tmp_path):
    temp_root = tmp_path / "ws"
    temp_root.mkdir()
    return DBConfig(temp_root=temp_root)
