# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .model import ResourceKind, Stage, Tier


TOOL_HINTS = {
    "cargo-objcopy": "cargo install cargo-binutils\nrustup component add llvm-tools-preview",
    "python3": "Install python3 via your system package manager.",
    "gdb-multiarch": "Install gdb-multiarch via your system package manager.",
    "openocd": "Install OpenOCD, set MIK32_OPENOCD_PATH or pass --openocd-path.",
    "cargo": "Install Rust with rustup (https://rustup.rs).",
    "git": "Install Git or fix PATH.",
}


@dataclass
class FlashError(Exception):
    """
    Structured pipeline error with enough context for:
      - clean CLI output
      - telling which stage or resource is at fault
    """
    kind: str
    message: str
    stage: Optional[Stage] = None
    details: dict = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        if self.stage:
            lines.append(f"stage={self.stage.value}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class PackageNotInstalled(FlashError):
    def __init__(self, tool: str, stage: Optional[Stage] = None):
        super().__init__(
            kind="package_not_installed",
            message=f"{tool} not found",
            stage=stage,
            details={"tool": tool},
            hint=TOOL_HINTS.get(tool, f"Install {tool} or fix PATH."),
        )
        self.tool = tool


class ObjcopyFailed(FlashError):
    def __init__(self, cmd: str, exit_code: Optional[int], reason: Optional[str] = None):
        details = {"cmd": cmd}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if reason:
            details["reason"] = reason
        super().__init__(
            kind="objcopy_failed",
            message="Converting the build output to ihex failed",
            stage=Stage.CONVERT,
            details=details,
        )
        self.exit_code = exit_code


class UploadFailed(FlashError):
    def __init__(self, cmd: str, exit_code: Optional[int], reason: Optional[str] = None):
        details = {"cmd": cmd}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if reason:
            details["reason"] = reason
        super().__init__(
            kind="upload_failed",
            message="Upload failed",
            stage=Stage.UPLOAD,
            details=details,
        )
        self.exit_code = exit_code


class GdbFailed(FlashError):
    def __init__(self, cmd: str, reason: str):
        super().__init__(
            kind="gdb_failed",
            message="Could not start the debugger",
            stage=Stage.ATTACH,
            details={"cmd": cmd, "reason": reason},
        )


class NoGdbExec(FlashError):
    def __init__(self, gdb_exec: str):
        super().__init__(
            kind="no_gdb_exec",
            message=f"Debugger {gdb_exec!r} not found",
            stage=Stage.ATTACH,
            details={"gdb_exec": gdb_exec},
            hint=TOOL_HINTS["gdb-multiarch"],
        )
        self.gdb_exec = gdb_exec


class NotAProject(FlashError):
    def __init__(self, project_dir, marker: str):
        super().__init__(
            kind="not_a_project",
            message=f"{project_dir} is not a project directory ({marker} missing)",
            details={"project_dir": str(project_dir)},
            hint="Run from the project root or create one with `mikflash init <name>`.",
        )
        self.project_dir = project_dir


class ResolutionError(FlashError):
    def __init__(
        self,
        resource: ResourceKind,
        attempted_tiers: Iterable[Tier],
        reason: str,
        stage: Optional[Stage] = None,
        hint: Optional[str] = None,
    ):
        attempted = list(attempted_tiers)
        super().__init__(
            kind="resolution_error",
            message=f"Could not resolve {resource.value}: {reason}",
            stage=stage,
            details={"attempted": ", ".join(t.value for t in attempted) or "none"},
            hint=hint,
        )
        self.resource = resource
        self.attempted_tiers = attempted


class ScaffoldError(FlashError):
    """Raised by `init` when the project cannot be created."""
    def __init__(self, kind: str, message: str, **details):
        super().__init__(kind=kind, message=message, details=details)
