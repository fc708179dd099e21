from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from rpi_usb_share.app.prompts import Prompter
from rpi_usb_share.config.settings import RunConfig
from rpi_usb_share.domain.models import (
    BackingStoreSpec,
    CompatibilityDecision,
    MountSpec,
    PackageSet,
    ServiceUnit,
    ShareStanza,
)
from rpi_usb_share.services.commands import CommandRunner, run_command


@dataclass
class SetupReport:
    """Decisions made during a run, in the order the steps took them."""

    compatibility: Optional[CompatibilityDecision] = None
    packages: Optional[PackageSet] = None
    backing_store: Optional[BackingStoreSpec] = None
    mount: Optional[MountSpec] = None
    share: Optional[ShareStanza] = None
    unit: Optional[ServiceUnit] = None
    rebooted: bool = False


@dataclass
class SetupContext:
    config: RunConfig = field(default_factory=RunConfig)
    prompter: Prompter = field(default_factory=Prompter)
    run: CommandRunner = run_command
    report: SetupReport = field(default_factory=SetupReport)
