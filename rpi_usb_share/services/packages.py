"""apt package provisioning with operator-driven retry.

One attempt is three commands run in order: refresh the package index,
upgrade installed packages, install the required set. The first failure ends
the attempt. A retry always starts over from the index refresh; there is no
memory of which commands already succeeded. The loop has no retry bound and
only ends on success or when the operator declines to retry.
"""

from __future__ import annotations

from typing import Sequence

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import PackageSet, PromptState
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.services.commands import CommandRunner
from rpi_usb_share.storage.exceptions import SetupAborted


log = LoggerFactory.for_packages()


def build_install_steps(packages: Sequence[str]) -> list[tuple[list[str], str]]:
    """Commands of one attempt, each paired with its failure message."""
    return [
        (["apt-get", "update"], "Failed to update package lists."),
        (["apt-get", "upgrade", "-y"], "Failed to upgrade packages."),
        (["apt-get", "install", "-y", *packages], "Failed to install packages."),
    ]


def install_packages(
    packages: Sequence[str], runner: CommandRunner
) -> tuple[bool, str | None]:
    """Run one full attempt.

    Returns:
        (success, failure message of the step that failed)
    """
    for command, failure_message in build_install_steps(packages):
        result = runner(command)
        if not result.ok:
            log.error(f"{' '.join(command)} failed: {result.message}")
            return False, failure_message
    return True, None


def provision_packages(context: SetupContext) -> PackageSet:
    """Install the required packages, asking the operator whether to retry on failure.

    Raises:
        SetupAborted: If an attempt fails and the operator declines to retry
    """
    prompter = context.prompter
    package_set = PackageSet(packages=tuple(context.config.packages))
    context.report.packages = package_set
    state = PromptState.RETRYING

    while state is PromptState.RETRYING:
        package_set.attempts += 1
        log.info(
            f"Package install attempt {package_set.attempts}: "
            f"{' '.join(package_set.packages)}"
        )
        success, failure_message = install_packages(package_set.packages, context.run)
        if success:
            state = PromptState.RESOLVED
            continue
        prompter.say(failure_message)
        prompter.say("An error occurred during package installation.")
        if prompter.confirm("Do you want to retry? (yes/no):"):
            state = PromptState.RETRYING
        else:
            state = PromptState.ABORTED

    if state is PromptState.ABORTED:
        prompter.say("Installation aborted by the user.")
        raise SetupAborted("package installation", "retry declined")

    prompter.say("Packages installed successfully.")
    return package_set
