# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from mikflash.config import EnvironmentProvider
from mikflash.debug_session import SCRIPT_CHANNELS
from mikflash.errors import ScaffoldError
from mikflash.model import BOOT_MODES, MCU_TYPES, PipelineRequest
from mikflash.process import SubprocessRunner
from mikflash.runner import run_pipeline
from mikflash.scaffold import create_project
from mikflash.ui.console import Console, set_console, get_console

PathArg = click.Path(path_type=Path)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """Build, flash and debug MIK32 firmware."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj.setdefault("runner", SubprocessRunner())
    ctx.obj.setdefault("env", EnvironmentProvider())


@cli.command()
@click.argument("name")
@click.pass_context
def init(ctx, name):
    """Create a new MIK32 project in ./NAME."""
    console = get_console()
    try:
        create_project(name, Path.cwd(), runner=ctx.obj["runner"], env=ctx.obj["env"])
    except ScaffoldError as e:
        console.print_error("Could not create project", e.message, details=[f"{k}={v}" for k, v in e.details.items()])
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.option("-e", "--example", default=None,
              help="Upload an example application instead of the main binary. Ignored with --reuse.")
@click.option("--reuse", is_flag=True, default=False,
              help="Skip the build and flash the image given with --app-hex-path.")
@click.option("--release/--no-release", default=True, show_default=True, help="Build with the release profile")
@click.option("-g", "--gdb-exec", default=None,
              help="Debugger executable. If given, attach to the board after flashing.")
@click.option("-o", "--openocd-path", default=None,
              help="OpenOCD executable, by name or path. Otherwise MIK32_OPENOCD_PATH, the project, then PATH.")
@click.option("-u", "--uploader-path", type=PathArg, default=None,
              help="mik32-uploader directory, relative to --project-dir. Otherwise MIK32_UPLOADER_PATH, then the project.")
@click.option("-a", "--app-hex-path", type=PathArg, default=None,
              help="Path of the hex image, relative to --project-dir (defaults to flash/app.hex).")
@click.option("--use-quad-spi", is_flag=True, default=False,
              help="Passed to uploader: use QuadSPI mode for external flash.")
@click.option("--openocd-host", default=None, help="Passed to uploader: OpenOCD server address.")
@click.option("--openocd-port", default=None, help="Passed to uploader: OpenOCD tcl port.")
@click.option("--adapter-speed", default=None, help="Passed to uploader: adapter speed in kHz.")
@click.option("--openocd-scripts", type=PathArg, default=None,
              help="OpenOCD scripts directory, relative to --project-dir (defaults to the uploader's).")
@click.option("--openocd-interface", type=PathArg, default=None,
              help="Passed to uploader: interface config, relative to the scripts directory.")
@click.option("--openocd-target", type=PathArg, default=None,
              help="Passed to uploader: target config, relative to the scripts directory.")
@click.option("-b", "--boot-mode", type=click.Choice(BOOT_MODES), default=None,
              help="Memory type. Not yet implemented.")
@click.option("-m", "--mcu-type", type=click.Choice(MCU_TYPES), default=None,
              help="MCU type. Not yet implemented.")
@click.option("--gdb-script-via", type=click.Choice(SCRIPT_CHANNELS), default="file", show_default=True,
              help="How the bootstrap script is handed to gdb")
@click.option("--project-dir", type=PathArg, default=Path("."), show_default=True, help="Project root")
@click.pass_context
def run(ctx, example, reuse, release, gdb_exec, openocd_path, uploader_path, app_hex_path,
        use_quad_spi, openocd_host, openocd_port, adapter_speed, openocd_scripts,
        openocd_interface, openocd_target, boot_mode, mcu_type, gdb_script_via, project_dir):
    """Build, flash and optionally debug the current project."""
    console = get_console()

    request = PipelineRequest(
        project_dir=project_dir,
        example=example,
        reuse=reuse,
        release=release,
        gdb_exec=gdb_exec,
        openocd_path=openocd_path,
        uploader_path=uploader_path,
        app_hex_path=app_hex_path,
        use_quad_spi=use_quad_spi,
        openocd_host=openocd_host,
        openocd_port=openocd_port,
        adapter_speed=adapter_speed,
        openocd_scripts=openocd_scripts,
        openocd_interface=openocd_interface,
        openocd_target=openocd_target,
        boot_mode=boot_mode,
        mcu_type=mcu_type,
        gdb_script_via=gdb_script_via,
    )

    try:
        result = run_pipeline(request, runner=ctx.obj["runner"], env=ctx.obj["env"])
        if result.outcomes:
            console.print_results(result.outcomes)
        sys.exit(result.exit_code)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
