"""Console output formatting utilities for mikflash."""

from __future__ import annotations

import sys
from typing import Iterable, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_run_started(
        self,
        project: str,
        reuse: bool,
        example: Optional[str],
        gdb_exec: Optional[str],
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Project: {project}")
        if example:
            print(f"Example: {example}")
        print(f"Reuse image: {'yes' if reuse else 'no'}")
        print(f"Debugger: {gdb_exec or '-'}")
        print()

    def print_stage_start(self, name: str) -> None:
        """Print stage start message."""
        print(f"\nSTAGE: {name}")

    def print_resolved(self, what: str, path: str, tier: str) -> None:
        """Print where a resource was found."""
        print(f"Using {what}: {path} ({tier})")

    def print_success(self, name: str) -> None:
        """Print success message."""
        print("STATUS: success")

    def print_stage_skipped(self, name: str, reason: str) -> None:
        """Print stage skipped message."""
        print(f"\nSTAGE: {name}")
        print(f"STATUS: skipped ({reason})")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print stage failure message.

        Args:
            name: Stage name
            reason: Failure reason/error message
            exit_code: Optional exit code of the failed tool
            hint: Optional hint for user
        """
        print(f"STAGE FAILED: {name}", file=sys.stderr)
        if exit_code is not None:
            print(f"Exit code: {exit_code}", file=sys.stderr)
        if hint:
            print(f"Hint: {hint}", file=sys.stderr)
        if self.debug:
            print(f"Error details: {reason}", file=sys.stderr)
        else:
            # Show first line of error for non-debug mode
            error_line = reason.split('\n')[0] if reason else "Unknown error"
            print(f"Error: {error_line}", file=sys.stderr)

    def print_results(self, outcomes: Iterable) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for outcome in outcomes:
            status = outcome.status
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {outcome.stage.value}: {status_display}")

    def print_warning(self, message: str) -> None:
        """Print a non-fatal diagnostic."""
        print(f"WARN: {message}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
