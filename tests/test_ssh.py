import io
import os
import stat

import pytest

from jobbootstrap.logger import discard_logger
from jobbootstrap.shell import Shell
from jobbootstrap.ssh import KeyScanError, find_path_to_ssh_tools, ssh_key_scan


def _write_tool(directory, name, body):
    path = directory / name
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def _shell(bin_dir):
    return Shell(logger=discard_logger(), env={"PATH": str(bin_dir)}, writer=io.StringIO())


@pytest.fixture
def bin_dir(tmp_path):
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


def _calls(log):
    if not log.exists():
        return []
    return log.read_text().splitlines()


def test_finding_ssh_tools(bin_dir):
    _write_tool(bin_dir, "ssh-keyscan", "exit 0")
    assert os.path.realpath(find_path_to_ssh_tools(_shell(bin_dir))) == os.path.realpath(
        str(bin_dir)
    )


def test_finding_ssh_tools_fails_without_keyscan(bin_dir):
    with pytest.raises(FileNotFoundError, match="Unable to find ssh-keyscan"):
        find_path_to_ssh_tools(_shell(bin_dir))


def test_keyscan_returns_output(bin_dir, tmp_path):
    log = tmp_path / "calls.log"
    _write_tool(
        bin_dir,
        "ssh-keyscan",
        f'echo "$@" >> "{log}"\necho "github.com ssh-rsa xxx="',
    )
    output = ssh_key_scan(_shell(bin_dir), "github.com", retry_interval=0.001)
    assert output == "github.com ssh-rsa xxx="
    assert _calls(log) == ["github.com"]


def test_keyscan_with_host_and_port_returns_output(bin_dir, tmp_path):
    log = tmp_path / "calls.log"
    _write_tool(
        bin_dir,
        "ssh-keyscan",
        f'echo "$@" >> "{log}"\necho "github.com ssh-rsa xxx="',
    )
    output = ssh_key_scan(_shell(bin_dir), "github.com:123", retry_interval=0.001)
    assert output == "github.com ssh-rsa xxx="
    assert _calls(log) == ["-p 123 github.com"]


def test_keyscan_retries_on_exit_1(bin_dir, tmp_path):
    log = tmp_path / "calls.log"
    _write_tool(
        bin_dir,
        "ssh-keyscan",
        f'echo "$@" >> "{log}"\necho "it failed" >&2\nexit 1',
    )
    with pytest.raises(KeyScanError) as info:
        ssh_key_scan(_shell(bin_dir), "github.com", retry_interval=0.001)
    assert str(info.value) == '`ssh-keyscan "github.com"` failed'
    assert _calls(log) == ["github.com"] * 3


def test_keyscan_retries_on_blank_output_and_exit_0(bin_dir, tmp_path):
    log = tmp_path / "calls.log"
    _write_tool(bin_dir, "ssh-keyscan", f'echo "$@" >> "{log}"\nexit 0')
    with pytest.raises(KeyScanError) as info:
        ssh_key_scan(_shell(bin_dir), "github.com", retry_interval=0.001)
    assert str(info.value) == '`ssh-keyscan "github.com"` returned nothing'
    assert _calls(log) == ["github.com"] * 3


def test_keyscan_succeeds_after_a_failure(bin_dir, tmp_path):
    marker = tmp_path / "failed-once"
    _write_tool(
        bin_dir,
        "ssh-keyscan",
        f'if [ ! -e "{marker}" ]; then : > "{marker}"; exit 1; fi\n'
        'echo "github.com ssh-rsa xxx="',
    )
    output = ssh_key_scan(_shell(bin_dir), "github.com", retry_interval=0.001)
    assert output == "github.com ssh-rsa xxx="
    assert marker.exists()


def test_keyscan_warns_on_each_failure(bin_dir):
    _write_tool(bin_dir, "ssh-keyscan", "exit 1")
    out = io.StringIO()
    from jobbootstrap.logger import WriterLogger

    sh = Shell(logger=WriterLogger(out, ansi=False), env={"PATH": str(bin_dir)},
               writer=io.StringIO())
    with pytest.raises(KeyScanError):
        ssh_key_scan(sh, "example.com", retry_interval=0.001)
    warnings = [line for line in out.getvalue().splitlines() if "Warning:" in line]
    assert len(warnings) == 3
    assert all('`ssh-keyscan "example.com"` failed' in line for line in warnings)