import os

import pytest

from jobbootstrap.lookpath import (
    ExecutableNotFoundError,
    look_path,
    look_path_unix,
    look_path_windows,
)


def _make_file(directory, name, executable=True):
    path = os.path.join(str(directory), name)
    with open(path, "w") as handle:
        handle.write("#!/bin/sh\n")
    os.chmod(path, 0o755 if executable else 0o644)
    return path


def test_unix_finds_executable_in_path(tmp_path):
    expected = _make_file(tmp_path, "tool")
    assert look_path_unix("tool", str(tmp_path)) == expected


def test_unix_first_directory_wins(tmp_path):
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    expected = _make_file(first, "tool")
    _make_file(second, "tool")
    assert look_path_unix("tool", f"{first}:{second}") == expected


def test_unix_skips_non_executable(tmp_path):
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    _make_file(first, "tool", executable=False)
    expected = _make_file(second, "tool")
    assert look_path_unix("tool", f"{first}:{second}") == expected


def test_unix_not_found_raises(tmp_path):
    with pytest.raises(ExecutableNotFoundError) as info:
        look_path_unix("missing", str(tmp_path))
    assert info.value.name == "missing"


def test_unix_empty_path_raises(tmp_path):
    with pytest.raises(ExecutableNotFoundError):
        look_path_unix("tool", "")


def test_unix_directory_is_not_executable(tmp_path):
    (tmp_path / "tool").mkdir()
    with pytest.raises(ExecutableNotFoundError):
        look_path_unix("tool", str(tmp_path))


def test_unix_path_with_slash_is_tried_directly(tmp_path):
    path = _make_file(tmp_path, "tool")
    assert look_path_unix(path, "") == path


def test_unix_path_with_slash_not_executable_raises(tmp_path):
    path = _make_file(tmp_path, "tool", executable=False)
    with pytest.raises(ExecutableNotFoundError):
        look_path_unix(path, str(tmp_path))


def test_windows_uses_given_extensions(tmp_path):
    expected = _make_file(tmp_path, "tool.exe")
    assert look_path_windows("tool", str(tmp_path), ".EXE;.BAT") == expected


def test_windows_adds_missing_dot_to_extension(tmp_path):
    expected = _make_file(tmp_path, "tool.exe")
    assert look_path_windows("tool", str(tmp_path), "exe") == expected


def test_windows_default_extensions(tmp_path):
    expected = _make_file(tmp_path, "tool.bat")
    assert look_path_windows("tool", str(tmp_path), "") == expected


def test_windows_extension_order(tmp_path):
    expected = _make_file(tmp_path, "tool.bat")
    _make_file(tmp_path, "tool.cmd")
    assert look_path_windows("tool", str(tmp_path), ".bat;.cmd") == expected


def test_windows_file_with_extension_found_directly(tmp_path):
    path = _make_file(tmp_path, "script.ps1")
    assert look_path_windows(path, "", ".exe") == path


def test_windows_quoted_path_entries(tmp_path):
    expected = _make_file(tmp_path, "tool.exe")
    assert look_path_windows("tool", f'"{tmp_path}";other', ".exe") == expected


def test_windows_not_found_raises(tmp_path):
    _make_file(tmp_path, "tool.txt")
    with pytest.raises(ExecutableNotFoundError):
        look_path_windows("tool", str(tmp_path), ".exe")


def test_look_path_finds_tool_for_platform(tmp_path):
    _make_file(tmp_path, "tool")
    _make_file(tmp_path, "tool.exe")
    result = look_path("tool", str(tmp_path), ".exe")
    assert os.path.dirname(result) == str(tmp_path)
    assert os.path.basename(result).startswith("tool")