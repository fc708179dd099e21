"""Orchestration driver for a provisioning run.

Steps run strictly in order, each one to completion:

    1. hardware compatibility gate
    2. package provisioning
    3. gadget mode (boot configuration)
    4. backing store
    5. mount registration
    6. share publishing
    7. watchdog service installation

A step either returns and the next one starts, or raises a SetupError that
ends the run. Nothing already applied is rolled back.
"""

from __future__ import annotations

from rpi_usb_share.app.context import SetupContext, SetupReport
from rpi_usb_share.config.settings import ISSUES_URL
from rpi_usb_share.logging import operation_context
from rpi_usb_share.services.commands import reboot_system
from rpi_usb_share.services.gadget import enable_gadget_mode
from rpi_usb_share.services.hardware import check_compatibility
from rpi_usb_share.services.packages import provision_packages
from rpi_usb_share.services.share import publish_share
from rpi_usb_share.services.watchdog import install_service
from rpi_usb_share.storage.backing_store import size_backing_store
from rpi_usb_share.storage.mount import register_mount


REBOOT_PROMPT = (
    "Setup complete. It's recommended to reboot the system. "
    "Do you want to reboot now? (y/n)"
)


def request_feedback(context: SetupContext) -> None:
    prompter = context.prompter
    prompter.say("It looks like you ran this script on a different hardware model.")
    prompter.say(
        "If everything worked as expected, please consider creating a new issue "
        "in the repository:"
    )
    prompter.say(ISSUES_URL)
    prompter.say(
        "This will help us to update the list of known compatible models. Thank you!"
    )


def offer_reboot(context: SetupContext) -> bool:
    """Ask for a reboot; True when one was started."""
    prompter = context.prompter
    if not prompter.confirm(REBOOT_PROMPT):
        prompter.say("Reboot cancelled. Please reboot manually later.")
        return False
    with operation_context("reboot") as log:
        result = reboot_system(context.run)
        if not result.ok:
            log.error(f"Reboot failed: {result.message}")
            prompter.say("Reboot failed. Please reboot manually later.")
            return False
    context.report.rebooted = True
    return True


def run_setup(context: SetupContext) -> SetupReport:
    """Run every provisioning step in order and finish with the reboot prompt.

    Raises:
        SetupError: When the operator aborts or a fatal step fails
    """
    with operation_context("compatibility"):
        compatibility = check_compatibility(context)
    with operation_context("packages"):
        provision_packages(context)
    with operation_context("gadget"):
        enable_gadget_mode(context)
    with operation_context("storage"):
        size_backing_store(context)
    with operation_context("mount"):
        mount_spec = register_mount(context)
    with operation_context("share"):
        publish_share(context, mount_spec.path)
    with operation_context("service"):
        install_service(context)

    if not compatibility.passed:
        request_feedback(context)

    offer_reboot(context)
    return context.report
