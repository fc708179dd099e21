"""Install the usbshare.py watchdog as a systemd service."""

from __future__ import annotations

import os
import shutil
from typing import Sequence

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import ServiceUnit
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.services.commands import run_systemctl_command
from rpi_usb_share.storage.exceptions import (
    CompanionScriptMissingError,
    ServiceInstallError,
)


log = LoggerFactory.for_system()

EXECUTABLE_MODE = 0o755


def _systemctl(context: SetupContext, args: Sequence[str]) -> bool:
    result = run_systemctl_command(args, context.run)
    if not result.ok:
        log.warning(f"systemctl {' '.join(args)} failed: {result.message}")
    return result.ok


def install_service(context: SetupContext) -> ServiceUnit:
    """Copy the watchdog script into place and enable its unit.

    Raises:
        CompanionScriptMissingError: If the script is not in the source directory
        ServiceInstallError: If the script or unit file cannot be written
    """
    config = context.config
    source = config.script_source
    if not source.is_file():
        context.prompter.say(f"{config.script_name} not found")
        raise CompanionScriptMissingError(source)

    target = config.script_install_path
    unit = ServiceUnit(name=config.unit_name, exec_path=target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(source, target)
        os.chmod(target, EXECUTABLE_MODE)
        config.unit_path.parent.mkdir(parents=True, exist_ok=True)
        config.unit_path.write_text(unit.render(), encoding="utf-8")
    except OSError as error:
        raise ServiceInstallError(f"cannot install {unit.name}", str(error)) from error
    log.info(f"Installed {source} to {target} and wrote {config.unit_path}")

    context.report.unit = unit
    # Each systemctl call runs even when an earlier one failed
    results = [
        _systemctl(context, ["daemon-reload"]),
        _systemctl(context, ["enable", unit.name]),
        _systemctl(context, ["start", unit.name]),
    ]
    if all(results):
        context.prompter.say(f"Service {unit.name} installed and started.")
    return unit
