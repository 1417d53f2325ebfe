# process.py
# Thin wrapper around subprocess.
# Every external tool the pipeline touches is started through a ProcessRunner
# so the rest of the codebase never calls subprocess directly.

from __future__ import annotations

import signal
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Sequence, Union

Arg = Union[str, Path]


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of one process invocation.

    returncode is None when the process could not be spawned at all; error
    then holds the reason.
    """
    argv: List[str]
    returncode: Optional[int]
    error: Optional[str] = None

    @property
    def spawned(self) -> bool:
        return self.returncode is not None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def cmd(self) -> str:
        return " ".join(self.argv)


class ProcessRunner(Protocol):
    def run(
        self,
        argv: Sequence[Arg],
        *,
        input_text: Optional[str] = None,
        quiet: bool = False,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        ...


class SubprocessRunner:
    """
    Runs commands in the foreground and waits for them to exit.

    stdout/stderr are inherited unless `quiet` is set. When `input_text` is
    given it is written to the child's stdin, which is then closed.
    """

    def run(
        self,
        argv: Sequence[Arg],
        *,
        input_text: Optional[str] = None,
        quiet: bool = False,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        cmd = [str(a) for a in argv]
        kwargs = {}
        if quiet:
            kwargs["stdout"] = subprocess.DEVNULL
            kwargs["stderr"] = subprocess.DEVNULL
        if input_text is not None:
            kwargs["input"] = input_text
            kwargs["text"] = True

        try:
            proc = subprocess.run(
                cmd,
                shell=False,
                cwd=str(cwd) if cwd is not None else None,
                **kwargs,
            )
        except OSError as e:
            # FileNotFoundError, PermissionError, exec format errors...
            return ProcessResult(argv=cmd, returncode=None, error=str(e))

        return ProcessResult(argv=cmd, returncode=proc.returncode)


def command_exists(cmd: Arg, runner: Optional[ProcessRunner] = None) -> bool:
    """
    Check whether `cmd` can be started at all.

    Runs `<cmd> --version` with its output discarded. Any exit status counts
    as "exists"; only a failure to spawn does not.
    """
    runner = runner or SubprocessRunner()
    return runner.run([cmd, "--version"], quiet=True).spawned


@contextmanager
def sigint_ignored() -> Iterator[None]:
    """
    Ignore SIGINT in this process for the duration of the block.

    The terminal still delivers Ctrl-C to the foreground child, which keeps
    running; the previous handler is restored on exit. Signal handlers can
    only be changed from the main thread, elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)
