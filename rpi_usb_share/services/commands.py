"""External command execution for provisioning steps."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from loguru import logger


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        """Best single-line explanation of a failure."""
        output = self.stderr.strip() or self.stdout.strip()
        if not output:
            return f"exit code {self.returncode}"
        return output.splitlines()[-1]


class CommandRunner(Protocol):
    def __call__(
        self, args: Sequence[str], *, cwd: Optional[Path] = None
    ) -> CommandResult:
        ...


def _escape_braces(text: str) -> str:
    """Escape curly braces for loguru formatting."""
    return text.replace("{", "{{").replace("}", "}}")


def validate_command_args(args: Sequence[str]) -> None:
    """Validate command arguments before executing."""
    if not args or not all(isinstance(arg, str) and arg for arg in args):
        raise ValueError("Command args must be a non-empty list of strings.")


def run_command(
    args: Sequence[str],
    *,
    cwd: Optional[Path] = None,
) -> CommandResult:
    """Run a command to completion and capture output.

    A missing executable is reported as exit code 127 rather than raised,
    so callers only deal with one failure shape.
    """
    validate_command_args(args)
    cwd_display = str(cwd) if cwd else None
    logger.debug(
        f"Running command: {_escape_braces(repr(list(args)))} cwd={cwd_display}",
        component="system",
    )
    try:
        completed = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as error:
        logger.debug(f"Command not found: {args[0]}", component="system")
        return CommandResult(args=tuple(args), returncode=127, stderr=str(error))
    result = CommandResult(
        args=tuple(args),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    logger.debug(f"Command return code: {result.returncode}", component="system")
    output_log = logger.bind(tags=["command-output"])
    output_log.trace(f"Command stdout: {_escape_braces(repr(result.stdout.strip()))}")
    output_log.trace(f"Command stderr: {_escape_braces(repr(result.stderr.strip()))}")
    return result


def run_systemctl_command(
    args: Sequence[str], runner: CommandRunner = run_command
) -> CommandResult:
    """Run systemctl command."""
    if not shutil.which("systemctl"):
        logger.debug(
            f"systemctl command failed: {' '.join(args)} (systemctl missing)",
            component="system",
        )
        return CommandResult(
            args=("systemctl", *args), returncode=1, stderr="systemctl missing"
        )
    return runner(["systemctl", *args])


def restart_service(name: str, runner: CommandRunner = run_command) -> CommandResult:
    """Restart a systemd service."""
    return run_systemctl_command(["restart", name], runner)


def reboot_system(runner: CommandRunner = run_command) -> CommandResult:
    """Reboot the system."""
    return run_systemctl_command(["reboot"], runner)
