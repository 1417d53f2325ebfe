# resolver.py
from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from . import config
from .config import EnvironmentProvider
from .errors import ResolutionError
from .model import ResolvedResource, ResourceKind, Stage, Tier
from .process import ProcessRunner, SubprocessRunner, command_exists

# ----------------------------------------------------------------------
# Lookup order per resource:
#
#   artifact:  override -> flash/app.hex
#   uploader:  override -> $MIK32_UPLOADER_PATH -> flash/mik32-uploader
#   openocd:   override -> $MIK32_OPENOCD_PATH  -> flash/openocd/bin/openocd -> PATH
#
# A tier returns a Path on success, None to fall through, or raises
# ResolutionError when the failure must not fall through (bad override).
#
# Relative overrides are taken from the project directory. A bare command
# name for openocd (no path separator) is looked up on PATH instead.
# ----------------------------------------------------------------------

TierFn = Callable[[], Optional[Path]]

_STAGE_OF = {
    ResourceKind.ARTIFACT: Stage.CONVERT,
    ResourceKind.UPLOADER_DIR: Stage.UPLOAD,
    ResourceKind.DEBUG_ADAPTER_EXEC: Stage.UPLOAD,
}

_HINTS = {
    ResourceKind.ARTIFACT: "Pass --app-hex-path or drop --reuse to rebuild the image.",
    ResourceKind.UPLOADER_DIR: (
        f"Pass --uploader-path, set {config.UPLOADER_ENV}, or place mik32-uploader under "
        f"{config.FLASH_DIR}/{config.UPLOADER_DIR_NAME}."
    ),
    ResourceKind.DEBUG_ADAPTER_EXEC: (
        f"Pass --openocd-path, set {config.OPENOCD_ENV}, or install openocd on PATH."
    ),
}


def flash_dir(project_dir: Path) -> Path:
    return project_dir / config.FLASH_DIR


class Resolver:
    """Turns optional overrides into concrete paths, one resource at a time."""

    def __init__(
        self,
        env: Optional[EnvironmentProvider] = None,
        runner: Optional[ProcessRunner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.env = env or EnvironmentProvider()
        self.runner = runner or SubprocessRunner()
        self.which = which

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        kind: ResourceKind,
        override: Optional[Path | str],
        project_dir: Path,
        *,
        must_exist: bool = True,
    ) -> ResolvedResource:
        """
        Resolve `kind` by walking its tiers in order.

        `must_exist` only matters for the artifact: when False the artifact is
        an output location and only its parent directory has to exist.
        """
        project_dir = Path(project_dir)

        if kind is ResourceKind.ARTIFACT:
            tiers = self._artifact_tiers(_under(project_dir, override), project_dir, must_exist)
        elif kind is ResourceKind.UPLOADER_DIR:
            tiers = self._uploader_tiers(_under(project_dir, override), project_dir)
        else:
            tiers = self._openocd_tiers(
                str(override) if override is not None else None, project_dir
            )

        attempted: List[Tier] = []
        for tier, fn in tiers:
            attempted.append(tier)
            found = fn()
            if found is None:
                continue
            resolved = ResolvedResource(kind=kind, path=found, tier=tier)
            self._validate(resolved, attempted)
            return resolved

        raise self._error(kind, attempted, "no lookup location succeeded")

    def scripts_dir(
        self,
        override: Optional[Path | str],
        uploader_dir: Path,
        project_dir: Optional[Path] = None,
    ) -> Path:
        """OpenOCD scripts directory: explicit override, else the one bundled with the uploader."""
        if override is not None:
            return _under(Path(project_dir) if project_dir is not None else Path.cwd(), override)
        return uploader_dir / config.OPENOCD_SCRIPTS_DIR

    def command_path(self, value: str, base: Optional[Path] = None) -> Path:
        """
        Path of an executable named by the user.

        A bare name such as `openocd` is looked up on PATH and kept as given
        when PATH has no answer, so the OS does the lookup at spawn time.
        Anything with a path separator is a filesystem path, taken relative
        to `base` (or the working directory) when not absolute.
        """
        if not _has_separator(value):
            found = self.which(value)
            return Path(found) if found else Path(value)
        if base is None:
            return _absolute(Path(value).expanduser())
        return _under(base, value)

    # ------------------------------------------------------------------
    # Tier tables
    # ------------------------------------------------------------------

    def _artifact_tiers(
        self, override: Optional[Path], project_dir: Path, must_exist: bool
    ) -> List[Tuple[Tier, TierFn]]:
        default = flash_dir(project_dir) / config.ARTIFACT_NAME

        def from_override() -> Optional[Path]:
            if override is None:
                return None
            if must_exist and not override.is_file():
                raise self._error(
                    ResourceKind.ARTIFACT, [Tier.OVERRIDE], f"{override} does not exist"
                )
            if not must_exist and not override.parent.is_dir():
                raise self._error(
                    ResourceKind.ARTIFACT,
                    [Tier.OVERRIDE],
                    f"output directory {override.parent} does not exist",
                )
            return override

        def from_project() -> Optional[Path]:
            if must_exist:
                return _absolute(default) if default.is_file() else None
            return _absolute(default) if default.parent.is_dir() else None

        return [
            (Tier.OVERRIDE, from_override),
            (Tier.PROJECT_DEFAULT, from_project),
        ]

    def _uploader_tiers(
        self, override: Optional[Path], project_dir: Path
    ) -> List[Tuple[Tier, TierFn]]:
        def from_override() -> Optional[Path]:
            if override is None:
                return None
            if not override.is_dir():
                raise self._error(
                    ResourceKind.UPLOADER_DIR, [Tier.OVERRIDE], f"{override} is not a directory"
                )
            return override

        def from_env() -> Optional[Path]:
            value = self.env.get(config.UPLOADER_ENV)
            return _absolute(Path(value).expanduser()) if value else None

        def from_project() -> Optional[Path]:
            candidate = flash_dir(project_dir) / config.UPLOADER_DIR_NAME
            return _absolute(candidate) if candidate.is_dir() else None

        return [
            (Tier.OVERRIDE, from_override),
            (Tier.ENVIRONMENT, from_env),
            (Tier.PROJECT_DEFAULT, from_project),
        ]

    def _openocd_tiers(
        self, override: Optional[str], project_dir: Path
    ) -> List[Tuple[Tier, TierFn]]:
        def from_override() -> Optional[Path]:
            if override is None:
                return None
            path = self.command_path(override, project_dir)
            if not command_exists(path, self.runner):
                raise self._error(
                    ResourceKind.DEBUG_ADAPTER_EXEC,
                    [Tier.OVERRIDE],
                    f"{override} cannot be executed",
                )
            return path

        def from_env() -> Optional[Path]:
            value = self.env.get(config.OPENOCD_ENV)
            return self.command_path(value) if value else None

        def from_project() -> Optional[Path]:
            candidate = flash_dir(project_dir) / config.OPENOCD_PROJECT_EXEC
            return _absolute(candidate) if candidate.is_file() else None

        def from_path() -> Optional[Path]:
            found = self.which(config.OPENOCD)
            return Path(found) if found else None

        return [
            (Tier.OVERRIDE, from_override),
            (Tier.ENVIRONMENT, from_env),
            (Tier.PROJECT_DEFAULT, from_project),
            (Tier.SYSTEM_PATH, from_path),
        ]

    # ------------------------------------------------------------------
    # Post-resolution checks (terminal: no fallthrough once a tier answered)
    # ------------------------------------------------------------------

    def _validate(self, resolved: ResolvedResource, attempted: List[Tier]) -> None:
        if resolved.kind is ResourceKind.UPLOADER_DIR:
            script = resolved.path / config.UPLOADER_SCRIPT
            if not script.is_file():
                raise self._error(
                    resolved.kind,
                    attempted,
                    f"{config.UPLOADER_SCRIPT} not found in {resolved.path} ({resolved.tier.value})",
                )
        elif resolved.kind is ResourceKind.DEBUG_ADAPTER_EXEC:
            # the override tier already probed it
            if resolved.tier is not Tier.OVERRIDE and not command_exists(resolved.path, self.runner):
                raise self._error(
                    resolved.kind,
                    attempted,
                    f"{resolved.path} ({resolved.tier.value}) cannot be executed",
                )

    @staticmethod
    def _error(kind: ResourceKind, attempted: List[Tier], reason: str) -> ResolutionError:
        return ResolutionError(
            resource=kind,
            attempted_tiers=attempted,
            reason=reason,
            stage=_STAGE_OF[kind],
            hint=_HINTS[kind],
        )


def _absolute(p: Path) -> Path:
    return p if p.is_absolute() else p.resolve()


def _under(base: Path, value: Optional[Path | str]) -> Optional[Path]:
    if value is None:
        return None
    path = Path(value).expanduser()
    return _absolute(path if path.is_absolute() else base / path)


def _has_separator(value: str) -> bool:
    return os.sep in value or (os.altsep is not None and os.altsep in value)
