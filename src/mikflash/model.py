# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import FlashError


class ResourceKind(str, Enum):
    ARTIFACT = "artifact"
    UPLOADER_DIR = "uploader directory"
    DEBUG_ADAPTER_EXEC = "openocd executable"


class Tier(str, Enum):
    """Where a resolved path came from, in lookup order."""
    OVERRIDE = "override"
    ENVIRONMENT = "environment"
    PROJECT_DEFAULT = "project"
    SYSTEM_PATH = "PATH"


class Stage(str, Enum):
    CONVERT = "convert"
    UPLOAD = "upload"
    ATTACH = "attach"


class PipelineState(str, Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    UPLOADING = "uploading"
    ATTACHING = "attaching"
    DONE = "done"
    FAILED = "failed"


BOOT_MODES = ("undefined", "eeprom", "ram", "spifi")
MCU_TYPES = ("MIK32V0", "MIK32V2")


@dataclass(frozen=True)
class PipelineRequest:
    """
    Everything a single `run` invocation was asked to do.

    Every path/tool field is an optional override; None means "resolve it
    the usual way".
    """
    project_dir: Path
    example: Optional[str] = None
    reuse: bool = False
    release: bool = True
    gdb_exec: Optional[str] = None
    openocd_path: Optional[str] = None  # command name or path
    uploader_path: Optional[Path] = None
    app_hex_path: Optional[Path] = None

    # passed straight through to the uploader
    use_quad_spi: bool = False
    openocd_host: Optional[str] = None
    openocd_port: Optional[str] = None
    adapter_speed: Optional[str] = None
    openocd_scripts: Optional[Path] = None
    openocd_interface: Optional[Path] = None
    openocd_target: Optional[Path] = None

    # reserved, accepted but not acted upon
    boot_mode: Optional[str] = None
    mcu_type: Optional[str] = None

    gdb_script_via: str = "file"  # "file" | "stdin"


@dataclass(frozen=True)
class ResolvedResource:
    kind: ResourceKind
    path: Path
    tier: Tier


@dataclass
class StageOutcome:
    stage: Stage
    status: str  # "ok" | "skipped(<reason>)" | "failed"
    error: Optional["FlashError"] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass
class PipelineResult:
    state: PipelineState = PipelineState.IDLE
    failed_stage: Optional[Stage] = None
    error: Optional["FlashError"] = None
    outcomes: List[StageOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    transitions: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])

    @property
    def exit_code(self) -> int:
        return 0 if self.state is PipelineState.DONE else 1

    def outcome(self, stage: Stage) -> Optional[StageOutcome]:
        for o in self.outcomes:
            if o.stage is stage:
                return o
        return None
