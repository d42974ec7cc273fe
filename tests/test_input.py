from pathlib import Path

import pytest

from rsrun.input import Input, InputKind

SHA1_ABC_PREFIX = "a9993e364706816aba3e2571"
SHA1_EMPTY_PREFIX = "da39a3ee5e6b4b0d3255bfef"


def file_input(name, path="path"):
    return Input(
        InputKind.FILE, "script", Path("path"), name=name, path=Path(path)
    )


def test_package_name_lowercases():
    assert file_input("Script").package_name() == "script"


def test_package_name_leading_digit():
    assert file_input("1Script").package_name() == "_1script"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a-b_c9", "a-b_c9"),
        ("my.script", "my_script"),
        ("script-has.weird§chars!", "script-has_weird_chars_"),
        ("x1", "x1"),
    ],
)
def test_package_name_replaces_odd_chars(name, expected):
    assert file_input(name).package_name() == expected


def test_safe_names():
    assert file_input("demo").safe_name() == "demo"
    assert Input(InputKind.EXPR, "1", Path(".")).safe_name() == "expr"
    assert Input(InputKind.LOOP, "|l| l", Path(".")).safe_name() == "loop"
    assert Input(InputKind.EXPR, "1", Path(".")).package_name() == "expr"


def test_file_id_depends_on_path_only():
    inp = file_input("demo", path="abc")
    assert inp.compute_id([]) == SHA1_ABC_PREFIX
    assert inp.compute_id([("time", "*")]) == SHA1_ABC_PREFIX


def test_expr_id_without_deps():
    assert Input(InputKind.EXPR, "abc", Path(".")).compute_id([]) == SHA1_ABC_PREFIX
    assert Input(InputKind.EXPR, "", Path(".")).compute_id([]) == SHA1_EMPTY_PREFIX


def test_expr_id_changes_with_deps():
    inp = Input(InputKind.EXPR, "abc", Path("."))
    with_dep = inp.compute_id([("time", "*")])
    assert with_dep != SHA1_ABC_PREFIX
    assert len(with_dep) == 24
    assert with_dep == inp.compute_id(iter([("time", "*")]))
    assert with_dep != inp.compute_id([("time", "0.1")])


def test_expr_id_depends_on_dep_order():
    inp = Input(InputKind.EXPR, "abc", Path("."))
    assert inp.compute_id([("a", "1"), ("b", "2")]) != inp.compute_id(
        [("b", "2"), ("a", "1")]
    )


def test_loop_id_depends_on_count():
    plain = Input(InputKind.LOOP, "abc", Path("."))
    counted = Input(InputKind.LOOP, "abc", Path("."), count=True)
    assert plain.compute_id([]) != counted.compute_id([])
    assert plain.compute_id([]) != SHA1_ABC_PREFIX
    assert all(c in "0123456789abcdef" for c in counted.compute_id([]))


def test_file_input_requires_name_and_path():
    with pytest.raises(ValueError):
        Input(InputKind.FILE, "x", Path("."), name="n")
    with pytest.raises(ValueError):
        Input(InputKind.FILE, "x", Path("."), path=Path("p"))


def test_expr_input_rejects_path():
    with pytest.raises(ValueError):
        Input(InputKind.EXPR, "x", Path("."), path=Path("p"))