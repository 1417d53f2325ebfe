# runner.py
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, List, Optional

from . import config
from .config import EnvironmentProvider
from .errors import FlashError, NoGdbExec, NotAProject, PackageNotInstalled, ResolutionError
from .model import (
    BOOT_MODES,
    MCU_TYPES,
    PipelineRequest,
    PipelineResult,
    PipelineState,
    ResolvedResource,
    ResourceKind,
    Stage,
    StageOutcome,
)
from .process import ProcessRunner, SubprocessRunner, command_exists
from .resolver import Resolver
from .stages import build_upload_argv, run_gdb, run_objcopy, run_upload
from .ui.console import get_console

# build ---> flash ---> (optional) debug


# ----------------------------------------------------------------------
# Request validation (warnings only, never fatal)
# ----------------------------------------------------------------------

def validate_request(request: PipelineRequest) -> List[str]:
    warnings: List[str] = []

    if request.reuse and request.app_hex_path is None:
        warnings.append("--reuse has no effect without --app-hex-path; the image will be rebuilt.")
    if request.reuse and request.example and request.app_hex_path is not None:
        warnings.append(
            f"--example {request.example!r} is ignored: --reuse flashes the existing image."
        )
    if request.boot_mode is not None:
        if request.boot_mode not in BOOT_MODES:
            warnings.append(f"Unknown boot mode {request.boot_mode!r}.")
        warnings.append("--boot-mode is not implemented yet and is ignored.")
    if request.mcu_type is not None:
        if request.mcu_type not in MCU_TYPES:
            warnings.append(f"Unknown MCU type {request.mcu_type!r}.")
        warnings.append("--mcu-type is not implemented yet and is ignored.")

    return warnings


def ensure_project(project_dir: Path) -> None:
    if not (project_dir / config.PROJECT_MARKER).is_file():
        raise NotAProject(project_dir, config.PROJECT_MARKER)


# ----------------------------------------------------------------------
# Stage sequencer
# ----------------------------------------------------------------------

class StageSequencer:
    """
    Drives convert -> upload -> attach for one request.

      IDLE -> CONVERTING -> UPLOADING -> ATTACHING -> DONE
      any non-terminal state -> FAILED

    Conversion is skipped (IDLE -> UPLOADING) when --reuse is given together
    with an existing --app-hex-path. A failing attach is reported but does not
    fail the run.
    """

    def __init__(
        self,
        request: PipelineRequest,
        *,
        runner: Optional[ProcessRunner] = None,
        env: Optional[EnvironmentProvider] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.request = request
        self.project_dir = Path(request.project_dir).resolve()
        self.runner = runner or SubprocessRunner()
        self.resolver = Resolver(env=env, runner=self.runner, which=which)
        self.console = get_console()
        self.result = PipelineResult()

    @property
    def state(self) -> PipelineState:
        return self.result.state

    def _transition(self, state: PipelineState) -> None:
        self.console.print_debug(f"{self.result.state.value} -> {state.value}")
        self.result.state = state
        self.result.transitions.append(state)

    def _fail(self, stage: Optional[Stage], err: FlashError) -> PipelineResult:
        if stage is not None:
            self.result.outcomes.append(StageOutcome(stage=stage, status="failed", error=err))
            self.console.print_failure(
                stage.value,
                str(err),
                exit_code=getattr(err, "exit_code", None),
                hint=err.hint,
            )
        else:
            self.console.print_error(err.kind, err.message, suggestion=err.hint)
        self.result.failed_stage = stage
        self.result.error = err
        self._transition(PipelineState.FAILED)
        return self.result

    def _resolved(self, res: ResolvedResource) -> ResolvedResource:
        self.console.print_resolved(res.kind.value, str(res.path), res.tier.value)
        return res

    # ------------------------------------------------------------------

    def run(self) -> PipelineResult:
        for warning in validate_request(self.request):
            self.console.print_warning(warning)
            self.result.warnings.append(warning)

        try:
            ensure_project(self.project_dir)
        except NotAProject as e:
            return self._fail(None, e)

        self.console.print_run_started(
            project=self.project_dir.name,
            reuse=self.request.reuse,
            example=self.request.example,
            gdb_exec=self.request.gdb_exec,
        )

        stage = Stage.CONVERT
        try:
            artifact = self._convert()
            stage = Stage.UPLOAD
            self._upload(artifact)
        except FlashError as e:
            return self._fail(stage, e)

        self._attach(artifact)
        self._transition(PipelineState.DONE)
        return self.result

    def _skip_conversion(self) -> bool:
        return self.request.reuse and self.request.app_hex_path is not None

    def _convert(self) -> Path:
        """Produce (or locate, in reuse mode) the image. Returns an existing path."""
        if self._skip_conversion():
            # no process is started before this check
            res = self._resolved(
                self.resolver.resolve(
                    ResourceKind.ARTIFACT, self.request.app_hex_path, self.project_dir, must_exist=True
                )
            )
            self.console.print_stage_skipped(Stage.CONVERT.value, "reusing existing image")
            self.result.outcomes.append(StageOutcome(stage=Stage.CONVERT, status="skipped(reuse)"))
            return res.path

        self._transition(PipelineState.CONVERTING)
        self.console.print_stage_start(Stage.CONVERT.value)

        if not command_exists(config.OBJCOPY_TOOL, self.runner):
            raise PackageNotInstalled(config.OBJCOPY_TOOL, stage=Stage.CONVERT)

        res = self._resolved(
            self.resolver.resolve(
                ResourceKind.ARTIFACT, self.request.app_hex_path, self.project_dir, must_exist=False
            )
        )
        run_objcopy(
            self.runner,
            res.path,
            release=self.request.release,
            example=self.request.example,
            project_dir=self.project_dir,
        )

        if not res.path.is_file():
            raise ResolutionError(
                resource=ResourceKind.ARTIFACT,
                attempted_tiers=[res.tier],
                reason=f"conversion succeeded but {res.path} was not written",
                stage=Stage.CONVERT,
            )

        self.console.print_success(Stage.CONVERT.value)
        self.result.outcomes.append(StageOutcome(stage=Stage.CONVERT, status="ok"))
        return res.path

    def _upload(self, artifact: Path) -> None:
        self._transition(PipelineState.UPLOADING)
        self.console.print_stage_start(Stage.UPLOAD.value)

        if not command_exists(config.PYTHON, self.runner):
            raise PackageNotInstalled(config.PYTHON, stage=Stage.UPLOAD)

        uploader = self._resolved(
            self.resolver.resolve(ResourceKind.UPLOADER_DIR, self.request.uploader_path, self.project_dir)
        )
        openocd = self._resolved(
            self.resolver.resolve(ResourceKind.DEBUG_ADAPTER_EXEC, self.request.openocd_path, self.project_dir)
        )
        scripts = self.resolver.scripts_dir(
            self.request.openocd_scripts, uploader.path, self.project_dir
        )
        self.console.print_debug(f"openocd scripts: {scripts}")

        argv = build_upload_argv(
            self.request,
            uploader_dir=uploader.path,
            openocd=openocd.path,
            scripts_dir=scripts,
            artifact=artifact,
        )
        self.console.print_debug(" ".join(argv))
        run_upload(self.runner, argv)

        self.console.print_success(Stage.UPLOAD.value)
        self.result.outcomes.append(StageOutcome(stage=Stage.UPLOAD, status="ok"))

    def _attach(self, artifact: Path) -> None:
        gdb_exec = self.request.gdb_exec
        if not gdb_exec:
            self.console.print_stage_skipped(Stage.ATTACH.value, "no debugger given")
            self.console.print_warning("No --gdb-exec given; skipping debug session.")
            self.result.outcomes.append(StageOutcome(stage=Stage.ATTACH, status="skipped(no gdb)"))
            return

        self._transition(PipelineState.ATTACHING)
        self.console.print_stage_start(Stage.ATTACH.value)
        try:
            if not command_exists(gdb_exec, self.runner):
                raise NoGdbExec(gdb_exec)
            run_gdb(self.runner, gdb_exec, artifact, script_via=self.request.gdb_script_via)
        except FlashError as e:
            # flashing already succeeded; report and carry on
            self.console.print_failure(Stage.ATTACH.value, str(e), hint=e.hint)
            self.result.outcomes.append(StageOutcome(stage=Stage.ATTACH, status="failed", error=e))
            return

        self.result.outcomes.append(StageOutcome(stage=Stage.ATTACH, status="ok"))


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def run_pipeline(
    request: PipelineRequest,
    *,
    runner: Optional[ProcessRunner] = None,
    env: Optional[EnvironmentProvider] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> PipelineResult:
    return StageSequencer(request, runner=runner, env=env, which=which).run()
