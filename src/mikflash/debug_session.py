"""gdb bootstrap script for attaching to a freshly flashed MIK32."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple

# Memory map: boot ROM and SPIFI flash are read-only; OpenOCD serves gdb on :3333.
# The directives do not depend on the selected interface/target config.
DEBUG_SCRIPT: Tuple[str, ...] = (
    "set mem inaccessible-by-default off",
    "mem 0x01000000 0x01002000 ro",
    "mem 0x80000000 0xffffffff ro",
    "set arch riscv:rv32",
    "set remotetimeout 10",
    "set remote hardware-breakpoint-limit 2",
    "target remote localhost:3333",
    "load",
)

SCRIPT_CHANNELS = ("file", "stdin")


def render_debug_script() -> str:
    return "\n".join(DEBUG_SCRIPT) + "\n"


@contextmanager
def debug_script_file() -> Iterator[Path]:
    """Write the script to a temporary file that lives for the duration of the block."""
    fd, name = tempfile.mkstemp(prefix="mikflash-", suffix=".gdb")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(render_debug_script())
        yield path
    finally:
        path.unlink(missing_ok=True)


def build_gdb_argv(gdb_exec: str, artifact: Path, script_path: Path | None = None) -> List[str]:
    argv = [gdb_exec]
    if script_path is not None:
        argv.extend(["-x", str(script_path)])
    argv.append(str(artifact))
    return argv
