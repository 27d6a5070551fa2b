import os

import pytest

from tiny_mysql.env import (
    FALLBACK_BIN_DIRS,
    extract_default,
    find_program,
    get_search_path,
    print_defaults,
    probe_defaults,
)
from tiny_mysql.errors import ExecutableNotFound, ProbeFailed

from .conftest import write_script

DEFAULTS = (
    "mysqld would have been started with the following arguments:\n"
    "--basedir=/usr --datadir=/var/lib/mysql --lc-messages-dir=/usr/share/mysql\n"
)


def test_search_path_appends_fallback_dirs(monkeypatch):
    monkeypatch.setenv("PATH", "/opt/a::/opt/b")
    paths = [str(p) for p in get_search_path()]
    assert paths[:2] == ["/opt/a", "/opt/b"]
    assert paths[2:] == list(FALLBACK_BIN_DIRS)


def test_find_program_returns_first_match(tmp_path, monkeypatch):
    first, second = tmp_path / "first", tmp_path / "second"
    first.mkdir()
    second.mkdir()
    write_script(second / "mysqld", "#!/bin/sh\n")
    write_script(first / "mysqld", "#!/bin/sh\n")
    monkeypatch.setenv("PATH", f"{first}:{second}")
    found = find_program("mysqld")
    assert found == first / "mysqld"
    assert found.is_absolute()


def test_find_program_skips_directories(tmp_path, monkeypatch):
    (tmp_path / "a" / "mysqld").mkdir(parents=True)
    (tmp_path / "b").mkdir()
    write_script(tmp_path / "b" / "mysqld", "#!/bin/sh\n")
    monkeypatch.setenv("PATH", f"{tmp_path / 'a'}:{tmp_path / 'b'}")
    assert find_program("mysqld") == tmp_path / "b" / "mysqld"


def test_find_program_not_found(monkeypatch, tmp_path):
    monkeypatch.setenv("PATH", str(tmp_path))
    with pytest.raises(ExecutableNotFound, match="no-such-program-4711"):
        find_program("no-such-program-4711")


def test_extract_default():
    assert extract_default(DEFAULTS, "basedir") == "/usr"
    assert extract_default(DEFAULTS, "datadir") == "/var/lib/mysql"
    assert extract_default(DEFAULTS, "lc-messages-dir") == "/usr/share/mysql"


def test_extract_default_missing():
    assert extract_default(DEFAULTS, "socket") is None
    assert extract_default("", "basedir") is None


def test_extract_default_matches_whole_name():
    assert extract_default("--innodb-basedir=/x --basedir=/y", "basedir") == "/y"


def test_probe_defaults(fake_bin):
    defaults = probe_defaults(fake_bin / "mysqld")
    assert defaults.basedir == "/opt/fake-mysql"
    assert defaults.lc_messages_dir == "/opt/fake-mysql/share"


def test_print_defaults_non_zero_exit(tmp_path):
    mysqld = write_script(tmp_path / "mysqld", "#!/bin/sh\necho nope >&2\nexit 2\n")
    with pytest.raises(ProbeFailed, match="nope"):
        print_defaults(mysqld)


def test_print_defaults_not_runnable(tmp_path):
    mysqld = tmp_path / "mysqld"
    mysqld.write_text("not a program")
    os.chmod(mysqld, 0o600)
    with pytest.raises(ProbeFailed):
        print_defaults(mysqld)
