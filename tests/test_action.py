import os
import time
from pathlib import Path

import platformdirs
import pytest

from rsrun.action import (
    InputAction,
    decide_action_for,
    generate_package,
    overwrite_file,
)
from rsrun.arguments import Args
from rsrun.build_kind import BuildKind
from rsrun.consts import ID_DIGEST_LEN_MAX
from rsrun.errors import ScriptError
from rsrun.input import Input, InputKind
from rsrun.platform import binary_cache_path, generated_projects_cache_path


@pytest.fixture
def cache(tmp_path, monkeypatch):
    root = tmp_path / "cache"
    monkeypatch.setattr(platformdirs, "user_cache_path", lambda *a, **k: root)
    return root


def make_action(pkg, **overrides):
    values = dict(
        cargo_output=False,
        force_compile=False,
        execute=True,
        pkg_path=pkg,
        script_path=pkg / "s.rs",
        using_cache=False,
        toolchain_version=None,
        debug=False,
        manifest="[package]\n",
        script="fn main() {}\n",
        build_kind=BuildKind.NORMAL,
        bin_name="s_abc",
        original_script_path=None,
    )
    values.update(overrides)
    return InputAction(**values)


def binary_name(name):
    return f"{name}.exe" if os.name == "nt" else name


def test_manifest_path(tmp_path):
    action = make_action(tmp_path / "pkg")
    assert action.manifest_path() == tmp_path / "pkg" / "Cargo.toml"


def test_overwrite_file_creates_and_replaces(tmp_path):
    target = tmp_path / "f.txt"
    overwrite_file(target, "one")
    assert target.read_text() == "one"
    overwrite_file(target, "two")
    assert target.read_text() == "two"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["f.txt"]


def test_overwrite_file_leaves_equal_content_alone(tmp_path):
    target = tmp_path / "f.txt"
    target.write_text("same")
    os.utime(target, (1000, 1000))
    overwrite_file(target, "same")
    assert target.stat().st_mtime == 1000


def test_generate_package_writes_files(tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg)
    generate_package(action)
    assert (pkg / "Cargo.toml").read_text() == action.manifest
    assert (pkg / "s.rs").read_text() == action.script


def test_generate_package_without_script(tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, script=None)
    generate_package(action)
    assert sorted(p.name for p in pkg.iterdir()) == ["Cargo.toml"]


def test_generate_package_removes_cache_dir_on_failure(tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, using_cache=True, script_path=pkg / "missing" / "s.rs")
    with pytest.raises(FileNotFoundError):
        generate_package(action)
    assert not pkg.exists()


def test_generate_package_keeps_user_dir_on_failure(tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, using_cache=False, script_path=pkg / "missing" / "s.rs")
    with pytest.raises(FileNotFoundError):
        generate_package(action)
    assert (pkg / "Cargo.toml").exists()


def test_decide_action_for_expr_with_pkg_path(tmp_path):
    pkg = tmp_path / "pkg"
    script_input = Input(InputKind.EXPR, "1 + 1", base_path=tmp_path)
    args = Args(script="1 + 1", expr=True, pkg_path=str(pkg))
    action = decide_action_for(script_input, [], [], args)
    assert action.pkg_path == pkg
    assert action.using_cache is False
    assert action.script_path == pkg / "expr.rs"
    assert action.bin_name == f"expr_{script_input.compute_id([])}"
    assert len(action.bin_name) == len("expr_") + ID_DIGEST_LEN_MAX
    assert "{1 + 1}" in action.script
    assert action.execute is True
    assert action.toolchain_version is None


def test_decide_action_for_uses_cache(cache, tmp_path):
    script_input = Input(InputKind.EXPR, "2", base_path=tmp_path)
    action = decide_action_for(script_input, [], [], Args(script="2", expr=True))
    assert action.using_cache is True
    assert action.pkg_path == generated_projects_cache_path() / script_input.compute_id([])


def test_decide_action_for_bench_and_test(tmp_path):
    script_input = Input(InputKind.EXPR, "2", base_path=tmp_path)
    bench = decide_action_for(
        script_input, [], [],
        Args(script="2", pkg_path=str(tmp_path), build_kind=BuildKind.BENCH, debug=True),
    )
    assert bench.toolchain_version == "nightly"
    assert bench.debug is False
    test = decide_action_for(
        script_input, [], [],
        Args(script="2", pkg_path=str(tmp_path), build_kind=BuildKind.TEST),
    )
    assert test.debug is True
    assert test.toolchain_version is None


def test_decide_action_for_explicit_toolchain_and_gen_only(tmp_path):
    script_input = Input(InputKind.EXPR, "2", base_path=tmp_path)
    action = decide_action_for(
        script_input, [], [],
        Args(script="2", pkg_path=str(tmp_path), toolchain_version="stable", gen_pkg_only=True),
    )
    assert action.toolchain_version == "stable"
    assert action.execute is False
    assert 'toolchain = "stable"' in action.manifest


def fresh_binary_setup(tmp_path, **overrides):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, **overrides)
    generate_package(action)
    old = time.time() - 3600
    os.utime(action.script_path, (old, old))
    os.utime(action.manifest_path(), (old, old))
    binary = binary_cache_path() / "release" / binary_name(action.bin_name)
    binary.parent.mkdir(parents=True)
    binary.write_text("")
    return action, binary


def test_command_reuses_fresh_binary(cache, tmp_path):
    action, binary = fresh_binary_setup(tmp_path, original_script_path="orig.rs")
    command = action.command_to_execute(["a", "b"], None)
    assert command.argv == [str(binary), "a", "b"]
    assert command.arg0 == "orig.rs"


def test_command_with_wrapper(cache, tmp_path):
    action, binary = fresh_binary_setup(tmp_path)
    command = action.command_to_execute(["x"], "hyperfine --runs 100")
    assert command.argv == ["hyperfine", "--runs", "100", str(binary), "x"]


def test_command_with_empty_wrapper(cache, tmp_path):
    action, _ = fresh_binary_setup(tmp_path)
    with pytest.raises(ScriptError, match="The wrapper cannot be empty"):
        action.command_to_execute([], "")


def test_command_missing_script_is_an_error(cache, tmp_path):
    action, _ = fresh_binary_setup(tmp_path)
    Path(action.script_path).unlink()
    with pytest.raises(FileNotFoundError):
        action.command_to_execute([], None)


def test_command_for_tests_is_cargo(cache, tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, build_kind=BuildKind.TEST, debug=True)
    command = action.command_to_execute([], None)
    assert command.argv[:2] == ["cargo", "test"]
    assert command.cwd == pkg
    target = command.argv.index("--target-dir")
    assert command.argv[target + 1] == str(binary_cache_path())
    assert "--release" not in command.argv
    assert "-q" not in command.argv


def test_command_for_bench_uses_toolchain(cache, tmp_path):
    pkg = tmp_path / "pkg"
    action = make_action(pkg, build_kind=BuildKind.BENCH, toolchain_version="nightly")
    command = action.command_to_execute([], None)
    assert command.argv[:3] == ["cargo", "+nightly", "bench"]
    assert "--release" not in command.argv