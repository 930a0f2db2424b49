"""Scanning SSH host keys with the ``ssh-keyscan`` tool."""

from __future__ import annotations

import json
import os
import time

from .lookpath import ExecutableNotFoundError
from .shell import ExitError, Shell

_MAX_ATTEMPTS = 3
_DEFAULT_RETRY_INTERVAL = 2.0
_RUN_ERRORS = (ExitError, ExecutableNotFoundError, OSError)


class KeyScanError(Exception):
    """``ssh-keyscan`` failed or returned no keys."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _attempt_description(attempt: int, interval: float) -> str:
    if attempt < _MAX_ATTEMPTS:
        return f"Attempt {attempt}/{_MAX_ATTEMPTS} Retrying in {interval:g}s"
    return f"Attempt {attempt}/{_MAX_ATTEMPTS}"


def ssh_key_scan(sh: Shell, host: str, retry_interval: float = _DEFAULT_RETRY_INTERVAL) -> str:
    """Return the host keys of ``host`` (``name`` or ``name:port``).

    The scan is tried up to three times; an empty result counts as a failure.
    """
    tools_dir = find_path_to_ssh_tools(sh)
    keyscan_path = os.path.join(tools_dir, "ssh-keyscan")

    parts = host.split(":")
    if len(parts) == 2:
        description = f"ssh-keyscan -p {_quote(parts[1])} {_quote(parts[0])}"
        args = ["-p", parts[1], parts[0]]
    else:
        description = f"ssh-keyscan {_quote(host)}"
        args = [host]

    error: KeyScanError = KeyScanError(f"`{description}` failed")
    for attempt in range(1, _MAX_ATTEMPTS + 1):
        try:
            output = sh.run_and_capture(keyscan_path, *args)
        except _RUN_ERRORS as err:
            error = KeyScanError(f"`{description}` failed")
            error.__cause__ = err
        else:
            if output.strip():
                return output
            # Some versions of ssh-keyscan exit cleanly without printing keys.
            error = KeyScanError(f"`{description}` returned nothing")

        sh.logger.warning(f"{error} ({_attempt_description(attempt, retry_interval)})")
        if attempt < _MAX_ATTEMPTS:
            time.sleep(retry_interval)

    raise error


def find_path_to_ssh_tools(sh: Shell) -> str:
    """Return the directory holding ``ssh-keyscan``.

    On Windows the tools bundled with Git for Windows are also looked for.
    """
    try:
        return os.path.dirname(sh.absolute_path("ssh-keyscan"))
    except _RUN_ERRORS as err:
        lookup_error = err

    if os.name == "nt":
        try:
            exec_path = sh.run_and_capture("git", "--exec-path")
        except _RUN_ERRORS:
            exec_path = ""
        if exec_path:
            candidates = (
                os.path.join(exec_path, "..", "..", "..", "usr", "bin", "ssh-keygen.exe"),
                os.path.join(exec_path, "..", "..", "bin", "ssh-keygen.exe"),
            )
            for candidate in candidates:
                if os.path.exists(candidate):
                    return os.path.dirname(os.path.normpath(candidate))

    raise FileNotFoundError(f"Unable to find ssh-keyscan: {lookup_error}")