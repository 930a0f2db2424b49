"""A virtual shell that runs commands, logs them and tracks their outcome."""

from __future__ import annotations

import codecs
import os
import shlex
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import IO, Any, Mapping, Optional

from .logger import LoggerStreamer, WriterLogger, stderr_logger
from .lookpath import look_path

try:
    import pty as _pty
except ImportError:  # pragma: no cover - platforms without pseudo terminals
    _pty = None

_IS_WINDOWS = os.name == "nt"
_CHUNK = 65536


class ExitError(Exception):
    """A command finished unsuccessfully; carries its exit code.

    A command killed by a signal has ``signaled`` set and a code of -1.
    """

    def __init__(self, code: int, message: str = "", signaled: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.signaled = signaled

    def __str__(self) -> str:
        return self.message


def _root_cause(error: BaseException) -> BaseException:
    while error.__cause__ is not None:
        error = error.__cause__
    return error


def get_exit_code(error: Optional[BaseException]) -> int:
    """Return the exit code carried by ``error``: 0 for none, 1 if unknown."""
    if error is None:
        return 0
    cause = _root_cause(error)
    if isinstance(cause, ExitError):
        return cause.code
    if isinstance(cause, subprocess.CalledProcessError):
        return cause.returncode
    return 1


def is_exit_signaled(error: Optional[BaseException]) -> bool:
    """Return whether ``error`` is an exit caused by a signal."""
    if error is None:
        return False
    cause = _root_cause(error)
    return isinstance(cause, ExitError) and cause.signaled


def is_exit_error(error: Optional[BaseException]) -> bool:
    """Return whether ``error`` describes a command's exit."""
    if error is None:
        return False
    return isinstance(_root_cause(error), (ExitError, subprocess.CalledProcessError))


def _process_alive(pid: int) -> bool:
    if _IS_WINDOWS:
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class LockFile:
    """A cross-process lock held by writing the owner's pid into a file."""

    def __init__(self, path: str) -> None:
        if not os.path.isabs(path):
            raise ValueError(f"lock path must be absolute: {path!r}")
        self.path = path

    def _owner(self) -> Optional[int]:
        try:
            with open(self.path, encoding="ascii", errors="replace") as handle:
                return int(handle.read().strip())
        except (OSError, ValueError):
            return None

    def try_lock(self) -> None:
        """Take the lock or raise ``BlockingIOError`` if another process holds it."""
        pid = os.getpid()
        while True:
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o666)
            except FileExistsError:
                owner = self._owner()
                if owner == pid:
                    return
                if owner is None or not _process_alive(owner):
                    try:
                        os.remove(self.path)
                    except FileNotFoundError:
                        pass
                    continue
                raise BlockingIOError(f"Locked by process {owner}") from None
            with os.fdopen(fd, "w", encoding="ascii") as handle:
                handle.write(f"{pid}\n")
            return

    def unlock(self) -> None:
        """Release the lock; it must be held by this process."""
        if self._owner() != os.getpid():
            raise PermissionError(f"Lock {self.path} is not owned by this process")
        os.remove(self.path)

    def __enter__(self) -> "LockFile":
        self.try_lock()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock()


def _format_command(command: str, args: tuple[str, ...] | list[str]) -> str:
    parts = [command, *args]
    if _IS_WINDOWS:
        return subprocess.list2cmdline(parts)
    return " ".join(shlex.quote(part) for part in parts)


def _signal_process(proc: subprocess.Popen, sig: int) -> None:
    """Signal the process group of ``proc`` where the platform allows it."""
    if proc.poll() is not None:
        return
    if _IS_WINDOWS:
        proc.terminate()
        return
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.send_signal(sig)


def _check_returncode(returncode: int) -> None:
    if returncode == 0:
        return
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        raise ExitError(-1, f"signal: {name}", signaled=True)
    raise ExitError(returncode, f"exit status {returncode}")


@dataclass
class _Command:
    path: str
    args: list[str]
    env: dict[str, str] = field(default_factory=dict)


class Shell:
    """Runs commands in a working directory and environment of its own."""

    def __init__(
        self,
        logger: Optional[WriterLogger] = None,
        env: Optional[Mapping[str, str]] = None,
        writer: Optional[IO[str]] = None,
        debug: bool = False,
        pty: bool = False,
    ) -> None:
        self.logger = logger if logger is not None else stderr_logger()
        self.env: dict[str, str] = dict(os.environ if env is None else env)
        self.writer = writer if writer is not None else sys.stdout
        self.debug = debug
        self.pty = pty
        self.lock_retry_interval = 1.0
        self._wd = os.getcwd()
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._cancelled = threading.Event()

    def getwd(self) -> str:
        """Return the working directory commands run in."""
        return self._wd

    def chdir(self, path: str) -> None:
        """Change the working directory, relative to the current one."""
        if not os.path.isabs(path):
            path = os.path.normpath(os.path.join(self._wd, path))
        self.logger.prompt(f"cd {shlex.quote(path)}")
        if not os.path.exists(path):
            raise FileNotFoundError("Failed to change working: directory does not exist")
        self._wd = path

    def absolute_path(self, executable: str) -> str:
        """Resolve ``executable`` using the shell's PATH and PATHEXT."""
        if os.path.isabs(executable):
            return executable
        found = look_path(executable, self.env.get("PATH", ""), self.env.get("PATHEXT", ""))
        return os.path.abspath(found)

    def interrupt(self) -> None:
        """Send an interrupt to the running command."""
        with self._lock:
            if self._proc is not None:
                _signal_process(self._proc, signal.SIGINT)

    def terminate(self) -> None:
        """Forcibly stop the running command."""
        with self._lock:
            if self._proc is not None:
                _signal_process(self._proc, getattr(signal, "SIGKILL", signal.SIGTERM))

    def cancel(self) -> None:
        """Cancel the shell: kill the running command and any started later."""
        with self._lock:
            self._cancelled.set()
            if self._proc is not None:
                _signal_process(self._proc, getattr(signal, "SIGKILL", signal.SIGTERM))

    def lock_file(self, path: str, timeout: float) -> LockFile:
        """Acquire a pid-file lock, retrying until ``timeout`` seconds pass."""
        absolute = os.path.abspath(path)
        lock = LockFile(absolute)
        deadline = time.monotonic() + timeout
        while True:
            try:
                lock.try_lock()
                return lock
            except OSError as err:
                self.logger.comment(f'Could not acquire lock on "{absolute}" ({err})')
                self.logger.comment(f"Trying again in {self.lock_retry_interval:g}s...")
                time.sleep(self.lock_retry_interval)
            if self._cancelled.is_set():
                raise InterruptedError(f'Cancelled while locking "{absolute}"')
            if time.monotonic() >= deadline:
                raise TimeoutError(f'Timed out acquiring lock on "{absolute}"')

    def run(self, command: str, *args: str) -> None:
        """Show a prompt, then run a command with output sent to the writer."""
        self.logger.prompt(_format_command(command, args))
        self.run_without_prompt(command, *args)

    def run_without_prompt(self, command: str, *args: str) -> None:
        """Run a command with output sent to the writer, without a prompt."""
        try:
            cmd = self._build_command(command, list(args))
        except Exception as err:
            self.logger.error(f"Error building command: {err}")
            raise
        self._execute(cmd, self.writer, stdout=True, stderr=True, use_pty=self.pty)

    def run_and_capture(self, command: str, *args: str) -> str:
        """Run a command and return its stripped standard output."""
        if self.debug:
            self.logger.prompt(_format_command(command, args))
        cmd = self._build_command(command, list(args))
        buffer = _StringSink()
        self._execute(cmd, buffer, stdout=True, stderr=False, use_pty=False)
        return buffer.getvalue().strip()

    def run_script(self, path: str, extra: Optional[Mapping[str, str]] = None) -> None:
        """Run a script with a suitable interpreter and extra environment."""
        ext = os.path.splitext(path)[1]
        is_bash = ext in ("", ".sh")
        is_pwsh = ext == ".ps1"

        if _IS_WINDOWS and is_bash:
            if self.debug:
                self.logger.comment(f"Attempting to run {path} with Bash for Windows")
            try:
                bash_path = self.absolute_path("bash.exe")
            except OSError as err:
                raise OSError(
                    f"Error finding bash.exe, needed to run scripts: {err}. "
                    "Is Git for Windows installed and correctly in your PATH variable?"
                ) from err
            command, args = bash_path, ["-c", path.replace("\\", "/")]
        elif _IS_WINDOWS and is_pwsh:
            if self.debug:
                self.logger.comment(f"Attempting to run {path} with Powershell")
            command, args = "powershell.exe", ["-file", path]
        elif not _IS_WINDOWS and is_bash:
            command, args = "/bin/bash", ["-c", path]
        else:
            command, args = path, []

        try:
            cmd = self._build_command(command, args)
        except Exception as err:
            self.logger.error(f"Error building command: {err}")
            raise
        if extra:
            cmd.env.update(extra)
        self._execute(cmd, self.writer, stdout=True, stderr=True, use_pty=self.pty)

    def _build_command(self, name: str, args: list[str]) -> _Command:
        env = dict(self.env)
        env["PWD"] = self._wd
        return _Command(path=self.absolute_path(name), args=args, env=env)

    def _spawn(self, cmd: _Command, **popen_kwargs: Any) -> subprocess.Popen:
        try:
            proc = subprocess.Popen(
                [cmd.path, *cmd.args],
                cwd=self._wd,
                env=cmd.env,
                stdin=subprocess.DEVNULL,
                start_new_session=not _IS_WINDOWS,
                **popen_kwargs,
            )
        except OSError as err:
            raise OSError(
                f"Error running `{_format_command(cmd.path, cmd.args)}`: {err}"
            ) from err
        with self._lock:
            self._proc = proc
            if self._cancelled.is_set():
                _signal_process(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        return proc

    def _execute(self, cmd: _Command, writer: Any, *, stdout: bool, stderr: bool,
                 use_pty: bool) -> None:
        started = time.monotonic()
        try:
            if use_pty and _pty is not None:
                returncode = self._run_in_pty(cmd, writer)
            else:
                returncode = self._run_with_pipes(cmd, writer, stdout, stderr)
        finally:
            with self._lock:
                self._proc = None
            if self.debug:
                elapsed = time.monotonic() - started
                self.logger.comment(f"↳ Command completed in {elapsed:.3f}s")
        _check_returncode(returncode)

    def _run_in_pty(self, cmd: _Command, writer: Any) -> int:
        master, slave = _pty.openpty()
        try:
            proc = self._spawn(cmd, stdout=slave, stderr=slave)
        except BaseException:
            os.close(master)
            os.close(slave)
            raise
        os.close(slave)
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                try:
                    chunk = os.read(master, _CHUNK)
                except OSError:
                    break
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if text:
                    writer.write(text)
            tail = decoder.decode(b"", final=True)
            if tail:
                writer.write(tail)
        finally:
            os.close(master)
        return proc.wait()

    def _run_with_pipes(self, cmd: _Command, writer: Any, stdout: bool,
                        stderr: bool) -> int:
        streamers: list[LoggerStreamer] = []

        def sink_for(requested: bool) -> Any:
            if requested:
                return writer
            if self.debug:
                streamer = LoggerStreamer(self.logger)
                streamers.append(streamer)
                return streamer
            return None

        out_sink = sink_for(stdout)
        err_sink = sink_for(stderr)
        write_lock = threading.Lock()
        try:
            proc = self._spawn(
                cmd,
                stdout=subprocess.PIPE if out_sink is not None else subprocess.DEVNULL,
                stderr=subprocess.PIPE if err_sink is not None else subprocess.DEVNULL,
            )
            pumps = [
                threading.Thread(target=_pump, args=(stream, sink, write_lock), daemon=True)
                for stream, sink in ((proc.stdout, out_sink), (proc.stderr, err_sink))
                if sink is not None
            ]
            for pump in pumps:
                pump.start()
            for pump in pumps:
                pump.join()
            return proc.wait()
        finally:
            for streamer in streamers:
                streamer.close()


class _StringSink:
    """Collects written text."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> int:
        self._parts.append(text)
        return len(text)

    def getvalue(self) -> str:
        return "".join(self._parts)


def _pump(stream: IO[bytes], sink: Any, lock: threading.Lock) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while chunk := stream.read1(_CHUNK):
            text = decoder.decode(chunk)
            if text:
                with lock:
                    sink.write(text)
        tail = decoder.decode(b"", final=True)
        if tail:
            with lock:
                sink.write(tail)
    finally:
        stream.close()