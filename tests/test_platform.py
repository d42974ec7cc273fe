import io
import os
import sys

from rsrun import platform
from rsrun.consts import PROGRAM_NAME


def test_cache_dir_is_named_after_program():
    assert platform.cache_dir().name == PROGRAM_NAME


def test_projects_path_under_cache_dir():
    path = platform.generated_projects_cache_path()
    assert path.name == "projects"
    assert path.parent == platform.cache_dir()


def test_binaries_path_under_cache_dir():
    path = platform.binary_cache_path()
    assert path.name == "binaries"
    assert path.parent == platform.cache_dir()


def test_current_time_is_monotonic_enough():
    first = platform.current_time()
    second = platform.current_time()
    assert 0 < first <= second


def test_dir_last_modified_of_new_directory(tmp_path):
    before = platform.current_time()
    directory = tmp_path / "project"
    directory.mkdir()
    after = platform.current_time()
    modified = platform.dir_last_modified(directory)
    assert before - 2000 <= modified <= after + 2000


def test_dir_last_modified_reads_exact_mtime(tmp_path):
    directory = tmp_path / "old"
    directory.mkdir()
    os.utime(directory, ns=(1_500_000_000_123_000_000, 1_500_000_000_123_000_000))
    assert platform.dir_last_modified(directory) == 1500000000123


def test_dir_last_modified_accepts_dir_entry(tmp_path):
    (tmp_path / "child").mkdir()
    entry = next(os.scandir(tmp_path))
    assert platform.dir_last_modified(entry) == platform.dir_last_modified(tmp_path / "child")


def test_dir_last_modified_missing_is_zero(tmp_path):
    assert platform.dir_last_modified(tmp_path / "missing") == 0


def test_no_colour_when_stderr_not_terminal(monkeypatch):
    monkeypatch.setattr(sys, "stderr", io.StringIO())
    assert platform.force_cargo_color() is False