"""Domain model for a provisioning run.

Each record is created at run start and either committed to the host
filesystem or discarded when the operator aborts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


# ==============================================================================
# Prompt State Machine
# ==============================================================================


class PromptState(Enum):
    """State of an interactive negotiation loop."""

    PROMPTING = "prompting"
    RETRYING = "retrying"
    RESOLVED = "resolved"
    ABORTED = "aborted"


# ==============================================================================
# Hardware Compatibility
# ==============================================================================


class CompatibilityOutcome(Enum):
    PROCEED = "proceed"
    PROCEED_WITH_WARNING = "proceed_with_warning"
    ABORT = "abort"


@dataclass(frozen=True)
class CompatibilityDecision:
    """Result of comparing the detected board against the known-good list."""

    detected_model: str
    compatible_models: tuple[str, ...]
    outcome: CompatibilityOutcome

    @property
    def passed(self) -> bool:
        """True only when the board matched without operator confirmation."""
        return self.outcome == CompatibilityOutcome.PROCEED


# ==============================================================================
# Packages
# ==============================================================================


@dataclass
class PackageSet:
    packages: tuple[str, ...]
    attempts: int = 0


# ==============================================================================
# Backing Store
# ==============================================================================


@dataclass
class BackingStoreSpec:
    """Mutable negotiation state for sizing the backing image.

    All sizes are integer megabytes. ``required_mb`` and ``max_possible_mb``
    are derived so they always follow ``requested_mb`` and ``available_mb``.
    """

    path: Path
    requested_mb: int
    buffer_mb: int
    available_mb: int = 0
    exists: bool = False
    created_mb: int | None = None

    @property
    def required_mb(self) -> int:
        return self.requested_mb + self.buffer_mb

    @property
    def max_possible_mb(self) -> int:
        return self.available_mb - self.buffer_mb

    @property
    def has_enough_space(self) -> bool:
        return self.available_mb >= self.required_mb


# ==============================================================================
# Mount
# ==============================================================================


class MountDecision(Enum):
    REUSE = "reuse"
    CREATE_DEFAULT = "create_default"
    CREATE_ALTERNATE = "create_alternate"
    ABORT = "abort"


@dataclass
class MountSpec:
    default_path: Path
    path: Path
    default_existed: bool = False
    decision: MountDecision | None = None

    def fstab_line(self, backing_file: Path) -> str:
        """Persistent mount-table entry binding the image to this directory."""
        return f"{backing_file} {self.path} vfat users,umask=000 0 2"


# ==============================================================================
# Share
# ==============================================================================


@dataclass(frozen=True)
class ShareStanza:
    """Samba share definition for the mount directory."""

    path: Path
    name: str = "usb"
    browseable: bool = True
    guest_ok: bool = True
    read_only: bool = False
    create_mask: str = "777"
    directory_mask: str = "777"

    def render(self) -> str:
        def yes_no(value: bool) -> str:
            return "yes" if value else "no"

        return (
            f"[{self.name}]\n"
            f"    browseable = {yes_no(self.browseable)}\n"
            f"    path = {self.path}\n"
            f"    guest ok = {yes_no(self.guest_ok)}\n"
            f"    read only = {yes_no(self.read_only)}\n"
            f"    create mask = {self.create_mask}\n"
            f"    directory mask = {self.directory_mask}\n"
        )


# ==============================================================================
# Service Unit
# ==============================================================================


@dataclass(frozen=True)
class ServiceUnit:
    """systemd unit supervising the watchdog script."""

    name: str
    exec_path: Path
    description: str = "Watchdog for USB Share"
    interpreter: str = "/usr/bin/python3"
    service_type: str = "idle"
    after: str = "multi-user.target"
    wanted_by: str = "multi-user.target"

    @property
    def exec_start(self) -> str:
        return f"{self.interpreter} {self.exec_path}"

    def render(self) -> str:
        return (
            "[Unit]\n"
            f"Description={self.description}\n"
            f"After={self.after}\n"
            "\n"
            "[Service]\n"
            f"Type={self.service_type}\n"
            f"ExecStart={self.exec_start}\n"
            "\n"
            "[Install]\n"
            f"WantedBy={self.wanted_by}\n"
        )
