"""Custom exceptions for provisioning steps.

This module defines a hierarchy of exceptions so the orchestration driver can
tell an operator abort from a missing precondition or a failed system command.
None of them trigger a rollback: mutations already applied stay applied.

Exception Hierarchy:
    SetupError (base)
        ├── SetupAborted
        ├── PreconditionError
        │   ├── CompanionScriptMissingError
        │   └── NotRootError
        └── StepFailedError
            ├── BackingStoreError
            ├── MountRegistrationError
            └── ServiceInstallError

Usage:
    from rpi_usb_share.storage.exceptions import SetupAborted

    if not prompter.confirm("Do you want to continue anyway? (y/n)"):
        raise SetupAborted("compatibility", "operator declined to continue")
"""

from pathlib import Path
from typing import Optional


class SetupError(Exception):
    """Base exception for all provisioning failures."""

    exit_code = 1


class SetupAborted(SetupError):
    """The operator declined to continue at a prompt."""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"Setup aborted during {step}: {reason}")


class PreconditionError(SetupError):
    """A required precondition for a step is not met."""



class CompanionScriptMissingError(PreconditionError):
    """The watchdog script to install was not found."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"{path.name} not found at {path}")


class NotRootError(PreconditionError):
    """Provisioning needs root privileges."""

    def __init__(self, euid: int):
        self.euid = euid
        super().__init__(f"Setup must run as root (effective uid {euid})")


class StepFailedError(SetupError):
    """A system command or file mutation required by a step failed."""

    def __init__(self, step: str, message: str, detail: Optional[str] = None):
        self.step = step
        self.detail = detail
        msg = f"{step}: {message}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class BackingStoreError(StepFailedError):
    """Creating or formatting the backing image failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__("backing store", message, detail)


class MountRegistrationError(StepFailedError):
    """Preparing the mount directory or activating the fstab entry failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__("mount", message, detail)


class ServiceInstallError(StepFailedError):
    """Installing or starting the watchdog unit failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__("service", message, detail)
