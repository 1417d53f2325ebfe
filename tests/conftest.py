from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from mikflash.config import EnvironmentProvider
from mikflash.process import ProcessResult
from mikflash.ui.console import Console, set_console


@dataclass
class Call:
    argv: List[str]
    input_text: Optional[str]
    quiet: bool
    cwd: Optional[Path]
    script_text: Optional[str] = None

    @property
    def is_probe(self) -> bool:
        return self.quiet and self.argv[1:] == ["--version"]


class FakeRunner:
    """
    Scripted ProcessRunner.

    exit_codes maps argv[0] to the exit code of real (non-probe) runs.
    Programs in `missing` cannot be spawned at all. A `cargo objcopy` run that
    exits 0 writes the output file unless write_artifact is False.
    """

    def __init__(
        self,
        exit_codes: Optional[Dict[str, int]] = None,
        missing=(),
        write_artifact: bool = True,
    ):
        self.exit_codes = dict(exit_codes or {})
        self.missing = {str(m) for m in missing}
        self.write_artifact = write_artifact
        self.calls: List[Call] = []

    def run(self, argv, *, input_text=None, quiet=False, cwd=None):
        cmd = [str(a) for a in argv]
        call = Call(argv=cmd, input_text=input_text, quiet=quiet, cwd=cwd)
        if "-x" in cmd:
            # the script file is deleted once the run returns
            call.script_text = Path(cmd[cmd.index("-x") + 1]).read_text()
        self.calls.append(call)

        if cmd[0] in self.missing:
            return ProcessResult(argv=cmd, returncode=None, error=f"No such file or directory: {cmd[0]!r}")
        if call.is_probe:
            return ProcessResult(argv=cmd, returncode=0)

        code = self.exit_codes.get(cmd[0], 0)
        if code == 0 and cmd[:2] == ["cargo", "objcopy"] and self.write_artifact:
            Path(cmd[-1]).write_text(":00000001FF\n")
        return ProcessResult(argv=cmd, returncode=code)

    def spawned(self, program: Optional[str] = None) -> List[Call]:
        """Non-probe invocations, optionally filtered by argv[0]."""
        return [
            c for c in self.calls
            if not c.is_probe and (program is None or c.argv[0] == program)
        ]

    def probes(self) -> List[str]:
        return [c.argv[0] for c in self.calls if c.is_probe]


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def project(tmp_path):
    """A minimal project with a bundled uploader and openocd."""
    root = tmp_path / "blinky"
    (root / "flash" / "mik32-uploader" / "openocd-scripts").mkdir(parents=True)
    (root / "flash" / "mik32-uploader" / "mik32_upload.py").write_text("# uploader\n")
    (root / "flash" / "openocd" / "bin").mkdir(parents=True)
    (root / "flash" / "openocd" / "bin" / "openocd").write_text("")
    (root / "Cargo.toml").write_text('[package]\nname = "blinky"\n')
    return root


@pytest.fixture
def empty_env():
    return EnvironmentProvider({})
