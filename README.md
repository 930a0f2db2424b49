# jobbootstrap

Helpers for the part of a CI job that runs around the actual build command:
running commands with a log-friendly prompt, finding executables, scanning
SSH host keys and keeping secret values out of the log.

## Install

```
pip install jobbootstrap
```

## What is inside

- `jobbootstrap.shell` – `Shell`, a small virtual shell with its own working
  directory (`getwd`, `chdir`) and environment (`env`, a dict). It prints
  prompts and comments through a logger and runs commands:
  - `run` shows a prompt and sends the command's output to `writer`;
  - `run_without_prompt` does the same without the prompt;
  - `run_and_capture` returns the command's standard output, stripped;
  - `run_script` picks an interpreter from the script's extension (bash for
    no extension or `.sh`, PowerShell for `.ps1` on Windows) and accepts
    extra environment variables.

  With `pty=True` output is read through a pseudo terminal where the platform
  has one. A running command can be stopped with `interrupt`, `terminate` or
  `cancel`; `cancel` also kills any command started afterwards.
  `lock_file(path, timeout)` takes a pid-file `LockFile`, retrying until the
  timeout (in seconds) passes and then raising `TimeoutError`.
  A command that fails raises `ExitError`, which carries `code` and, for a
  command killed by a signal, `signaled`. `get_exit_code`, `is_exit_signaled`
  and `is_exit_error` inspect any error, following its `__cause__` chain.
- `jobbootstrap.logger` – `WriterLogger` writes lines, headers (`~~~ ...`),
  comments (`# ...`), errors, warnings and prompts (`$ ...`, or `> ...` on
  Windows) to any text stream, optionally with ANSI colours.
  `discard_logger()` and `stderr_logger()` return ready-made loggers.
  `LoggerStreamer` turns a stream of output into prefixed log lines; call
  `close` (or use it as a context manager) to log an unterminated last line.
- `jobbootstrap.lookpath` – `look_path(file, path, file_extensions)` finds an
  executable on a search path using the rules of the running platform;
  `look_path_unix` and `look_path_windows` apply one set of rules explicitly.
  A failed search raises `ExecutableNotFoundError`.
- `jobbootstrap.ssh` – `ssh_key_scan(sh, host, retry_interval)` runs
  `ssh-keyscan` for `host` or `host:port`, trying up to three times and
  treating empty output as a failure; it raises `KeyScanError` when every
  attempt fails. `find_path_to_ssh_tools` locates the directory holding
  `ssh-keyscan`, also looking inside Git for Windows on Windows.
- `jobbootstrap.redactor` – `Redactor` replaces secret values in a byte
  stream, even when a value is split across writes. Call `flush` after the
  last write, or use it as a context manager.
- `jobbootstrap.batch` – `batch_escape` escapes text for `ECHO` in a Windows
  batch file.

## Examples

Redacting output:

```python
import io
from jobbootstrap.redactor import Redactor

out = io.BytesIO()
redactor = Redactor(out, "[REDACTED]", ["ipsum"])
redactor.write(b"Lorem ip")
redactor.write(b"sum dolor sit amet")
redactor.flush()
assert out.getvalue() == b"Lorem [REDACTED] dolor sit amet"
```

Running commands:

```python
import io
from jobbootstrap.logger import WriterLogger
from jobbootstrap.shell import Shell, ExitError

log = io.StringIO()
sh = Shell(logger=WriterLogger(log), writer=log)
sh.run("echo", "hello")                 # log: "$ echo hello\nhello\n"
print(sh.run_and_capture("pwd"))

try:
    sh.run("false")
except ExitError as err:
    print(err.code)                     # 1
```

Scanning a host key:

```python
from jobbootstrap.shell import Shell
from jobbootstrap.ssh import ssh_key_scan

keys = ssh_key_scan(Shell(), "git.example.com:2222")
```

## What it does not do

The package runs commands and scans keys, but it does not check out
repositories, parse repository addresses, or read and update a
`known_hosts` file; `ssh_key_scan` only returns the scanned keys for the
caller to store. It has no command-line program of its own.

## Running the tests

```
pip install -e ".[test]"
pytest
```