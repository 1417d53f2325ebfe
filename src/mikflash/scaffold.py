# scaffold.py
# Creates a new MIK32 firmware project: cargo manifest, target config,
# a no_std main stub, the flash/ directory and a git repository.

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from . import config
from .config import EnvironmentProvider
from .errors import ScaffoldError
from .process import ProcessRunner, SubprocessRunner
from .ui.console import get_console

HAL_GIT = "https://github.com/mik32-rs/mik32-hal.git"
RT_GIT = "https://github.com/mik32-rs/mik32-rt.git"
TARGET_TRIPLE = "riscv32imc-unknown-none-elf"

CARGO_TOML = """\
[package]
name = "{name}"
version = "0.1.0"
edition = "2021"

[dependencies]

[profile.release]
opt-level = "z"
lto = true
codegen-units = 1
"""

CARGO_CONFIG = f"""\
[target.{TARGET_TRIPLE}]
rustflags = ["-C", "link-arg=-Tlink.x"]

[build]
target = "{TARGET_TRIPLE}"
"""

MAIN_RS = """\
#![no_std]
#![no_main]

use mik32_hal::*;

#[mik32_rt::entry]
fn main() -> ! {
    loop {}
}
"""


def _validate_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ScaffoldError("bad_name", f"Invalid project name: {name!r}", name=name)


def _write_layout(project_dir: Path, name: str) -> None:
    (project_dir / "src").mkdir(parents=True)
    (project_dir / ".cargo").mkdir()
    (project_dir / config.FLASH_DIR).mkdir()

    (project_dir / config.PROJECT_MARKER).write_text(CARGO_TOML.format(name=name), encoding="utf-8")
    (project_dir / ".cargo" / "config.toml").write_text(CARGO_CONFIG, encoding="utf-8")
    (project_dir / "src" / "main.rs").write_text(MAIN_RS, encoding="utf-8")


def cargo_add_git(runner: ProcessRunner, project_dir: Path, url: str) -> None:
    """`cargo add --git <url>` against the project's manifest."""
    argv = ["cargo", "add", "--git", url, "--manifest-path", str(project_dir / config.PROJECT_MARKER)]
    proc = runner.run(argv)
    if not proc.ok:
        raise ScaffoldError(
            "fetch_failed",
            f"Failed to add dependency {url}",
            cmd=proc.cmd,
            exit_code=proc.returncode,
            reason=proc.error,
        )
    get_console().print_info(f"Added dependency: {url}")


def git_init(runner: ProcessRunner, project_dir: Path) -> bool:
    """Initialise a git repository. Failure is reported, not raised."""
    proc = runner.run(["git", "init", str(project_dir)], quiet=True)
    if not proc.spawned:
        get_console().print_warning(f"Failed to run git init: {proc.error}")
        return False
    if not proc.ok:
        get_console().print_warning("Failed to initialize git repo.")
        return False
    return True


def missing_env_warnings(env: EnvironmentProvider) -> List[str]:
    warnings = []
    if not env.is_set(config.UPLOADER_ENV):
        warnings.append(
            f"Ensure you provide mik32-uploader path in {config.UPLOADER_ENV} environment variable"
        )
    if not env.is_set(config.OPENOCD_ENV):
        warnings.append(
            f"Ensure you provide openocd path in {config.OPENOCD_ENV} environment variable"
        )
    return warnings


def create_project(
    name: str,
    parent_dir: Path,
    *,
    runner: Optional[ProcessRunner] = None,
    env: Optional[EnvironmentProvider] = None,
) -> Path:
    """
    Create project `name` under `parent_dir` and return its path.

    Raises:
        ScaffoldError: bad/taken name, or a dependency could not be added
    """
    console = get_console()
    runner = runner or SubprocessRunner()
    env = env or EnvironmentProvider()

    _validate_name(name)
    project_dir = Path(parent_dir) / name
    if project_dir.exists():
        raise ScaffoldError(
            "bad_name",
            "Project with same name exists. Make sure to name it differently.",
            path=str(project_dir),
        )

    console.print_info(f"Making project {name}... Creating structure")
    _write_layout(project_dir, name)

    console.print_info(f"Making project {name}... Adding dependencies")
    cargo_add_git(runner, project_dir, HAL_GIT)
    cargo_add_git(runner, project_dir, RT_GIT)

    console.print_info(f"Making project {name}... Verifying paths")
    for warning in missing_env_warnings(env):
        console.print_warning(warning)

    console.print_info(f"Making project {name}... Initializing git repo")
    git_init(runner, project_dir)

    console.print_info("Done!")
    return project_dir
