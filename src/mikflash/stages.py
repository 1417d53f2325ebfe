# stages.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from . import config
from .debug_session import build_gdb_argv, debug_script_file, render_debug_script
from .errors import GdbFailed, ObjcopyFailed, UploadFailed
from .model import PipelineRequest
from .process import ProcessResult, ProcessRunner, sigint_ignored


# ---------------------------------------------------------------------
# Conversion: cargo objcopy -> ihex
# ---------------------------------------------------------------------

def build_objcopy_argv(artifact: Path, *, release: bool, example: Optional[str]) -> List[str]:
    argv = ["cargo", "objcopy"]
    if release:
        argv.append("--release")
    if example:
        argv.extend(["--example", example])
    argv.extend(["--", "-O", config.HEX_FORMAT, str(artifact)])
    return argv


def run_objcopy(
    runner: ProcessRunner,
    artifact: Path,
    *,
    release: bool,
    example: Optional[str],
    project_dir: Path,
) -> ProcessResult:
    """Build the firmware and write it to `artifact` as Intel HEX."""
    argv = build_objcopy_argv(artifact, release=release, example=example)
    proc = runner.run(argv, cwd=project_dir)
    if not proc.ok:
        raise ObjcopyFailed(cmd=proc.cmd, exit_code=proc.returncode, reason=proc.error)
    return proc


# ---------------------------------------------------------------------
# Upload: python3 mik32_upload.py --run-openocd ...
# ---------------------------------------------------------------------

def build_upload_argv(
    request: PipelineRequest,
    *,
    uploader_dir: Path,
    openocd: Path,
    scripts_dir: Path,
    artifact: Path,
) -> List[str]:
    """
    Uploader command line. Pass-through flags are only added when the user
    gave them; the uploader owns their defaults.
    """
    argv = [
        config.PYTHON,
        str(uploader_dir / config.UPLOADER_SCRIPT),
        "--run-openocd",
        "--openocd-exec", str(openocd),
        "--openocd-scripts", str(scripts_dir),
    ]
    if request.use_quad_spi:
        argv.append("--use-quad-spi")
    if request.openocd_host is not None:
        argv.extend(["--openocd-host", request.openocd_host])
    if request.openocd_port is not None:
        argv.extend(["--openocd-port", str(request.openocd_port)])
    if request.adapter_speed is not None:
        argv.extend(["--adapter-speed", str(request.adapter_speed)])
    if request.openocd_interface is not None:
        argv.extend(["--openocd-interface", str(request.openocd_interface)])
    if request.openocd_target is not None:
        argv.extend(["--openocd-target", str(request.openocd_target)])
    argv.append(str(artifact))
    return argv


def run_upload(runner: ProcessRunner, argv: List[str]) -> ProcessResult:
    proc = runner.run(argv)
    if not proc.ok:
        raise UploadFailed(cmd=proc.cmd, exit_code=proc.returncode, reason=proc.error)
    return proc


# ---------------------------------------------------------------------
# Debug attach: interactive gdb session, blocks until the user quits
# ---------------------------------------------------------------------

def run_gdb(
    runner: ProcessRunner,
    gdb_exec: str,
    artifact: Path,
    *,
    script_via: str = "file",
) -> ProcessResult:
    """
    Start gdb on `artifact` with the bootstrap script.

    Only a failure to start gdb is an error; whatever the session exits with
    is the user's business.
    """
    # Ctrl-C belongs to gdb (it halts the target), not to us.
    with sigint_ignored():
        if script_via == "stdin":
            proc = runner.run(build_gdb_argv(gdb_exec, artifact), input_text=render_debug_script())
        else:
            with debug_script_file() as script:
                proc = runner.run(build_gdb_argv(gdb_exec, artifact, script))

    if not proc.spawned:
        raise GdbFailed(cmd=proc.cmd, reason=proc.error or "spawn failed")
    return proc
