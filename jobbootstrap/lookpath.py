"""Locate executables along a caller-supplied search path."""

from __future__ import annotations

import os
import stat


class ExecutableNotFoundError(Exception):
    """Raised when no executable can be found for a name."""

    def __init__(self, name: str, reason: object) -> None:
        super().__init__(f'"{name}": {reason}')
        self.name = name
        self.reason = reason


_NOT_FOUND = "executable file not found in $PATH"


def _split_unix_list(path: str) -> list[str]:
    if path == "":
        return []
    return path.split(":")


def _split_windows_list(path: str) -> list[str]:
    """Split a semicolon separated list, honouring double quotes."""
    if path == "":
        return []
    items = []
    current = []
    quoted = False
    for char in path:
        if char == '"':
            quoted = not quoted
        elif char == ";" and not quoted:
            items.append("".join(current))
            current = []
        else:
            current.append(char)
    items.append("".join(current))
    return items


def _join(directory: str, file: str) -> str:
    return os.path.normpath(os.path.join(directory, file))


def _check_unix_executable(file: str) -> None:
    info = os.stat(file)
    if not stat.S_ISDIR(info.st_mode) and info.st_mode & 0o111:
        return
    raise PermissionError(f"permission denied: {file}")


def look_path_unix(file: str, path: str) -> str:
    """Search the colon separated ``path`` for an executable named ``file``."""
    if "/" in file:
        try:
            _check_unix_executable(file)
        except OSError as err:
            raise ExecutableNotFoundError(file, err) from err
        return file
    for directory in _split_unix_list(path):
        candidate = _join(directory or ".", file)
        try:
            _check_unix_executable(candidate)
        except OSError:
            continue
        return candidate
    raise ExecutableNotFoundError(file, _NOT_FOUND)


def _check_windows_file(file: str) -> bool:
    try:
        return not os.path.isdir(file) and os.path.exists(file)
    except OSError:
        return False


def _has_ext(file: str) -> bool:
    dot = file.rfind(".")
    if dot < 0:
        return False
    separator = max(file.rfind(c) for c in ":\\/")
    return separator < dot


def _find_windows_executable(file: str, exts: list[str]) -> str:
    if not exts:
        if _check_windows_file(file):
            return file
        raise FileNotFoundError(f"file does not exist: {file}")
    if _has_ext(file) and _check_windows_file(file):
        return file
    for ext in exts:
        candidate = file + ext
        if _check_windows_file(candidate):
            return candidate
    raise FileNotFoundError(f"file does not exist: {file}")


def _windows_extensions(file_extensions: str) -> list[str]:
    if not file_extensions:
        return [".com", ".exe", ".bat", ".cmd"]
    exts = []
    for ext in file_extensions.lower().split(";"):
        if not ext:
            continue
        exts.append(ext if ext.startswith(".") else "." + ext)
    return exts


def look_path_windows(file: str, path: str, file_extensions: str = "") -> str:
    """Search the semicolon separated ``path`` using PATHEXT-style extensions."""
    exts = _windows_extensions(file_extensions)
    if any(c in file for c in ":\\/"):
        try:
            return _find_windows_executable(file, exts)
        except OSError as err:
            raise ExecutableNotFoundError(file, err) from err
    try:
        return _find_windows_executable(_join(".", file), exts)
    except OSError:
        pass
    for directory in _split_windows_list(path):
        try:
            return _find_windows_executable(_join(directory, file), exts)
        except OSError:
            continue
    raise ExecutableNotFoundError(file, _NOT_FOUND)


def look_path(file: str, path: str, file_extensions: str = "") -> str:
    """Find ``file`` along ``path`` using the rules of the running platform."""
    if os.name == "nt":
        return look_path_windows(file, path, file_extensions)
    return look_path_unix(file, path)