"""Backing store sizing and creation.

The backing store is a zero-filled image file formatted FAT32 that the
gadget driver exposes to the USB host. It is created once: when the file is
already present it is never resized, reformatted, or otherwise touched.

Sizing Loop:
    1. Free space on the root filesystem is measured in whole megabytes
       (integer division) at the start of every iteration.
    2. ``required = requested + buffer`` with a fixed 1024 MB buffer.
    3. Enough space: create the image at the requested size, no prompt.
    4. Not enough: the operator picks one of
         1. create at ``available - buffer`` MB right away
         2. enter a new requested size, then go back to step 1
         3. abort the run
       Any other answer re-prompts the menu without measuring again.

Commands:
    dd bs=1M if=/dev/zero of=<path> count=<size>
    mkdosfs <path> -F 32 -I
"""

from __future__ import annotations

from pathlib import Path

import psutil

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import BackingStoreSpec, PromptState
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.services.commands import CommandRunner
from rpi_usb_share.storage.exceptions import BackingStoreError, SetupAborted


log = LoggerFactory.for_storage()

BYTES_PER_MB = 1024 * 1024

CHOICE_MAX_SIZE = "max"
CHOICE_NEW_SIZE = "new"
CHOICE_ABORT = "abort"

SIZE_MENU_OPTIONS = {
    "1": CHOICE_MAX_SIZE,
    "2": CHOICE_NEW_SIZE,
    "3": CHOICE_ABORT,
}


def get_available_space_mb(root: Path) -> int:
    """Free space available to unprivileged users, in whole megabytes."""
    usage = psutil.disk_usage(str(root))
    return usage.free // BYTES_PER_MB


def create_usb_file(path: Path, size_mb: int, runner: CommandRunner) -> None:
    """Write a zero-filled image and format it FAT32.

    Raises:
        BackingStoreError: If the size is not positive or dd or mkdosfs fails
    """
    if size_mb <= 0:
        raise BackingStoreError(f"cannot create a {size_mb} MB image at {path}")
    log.info(f"Creating {size_mb} MB backing store at {path}")
    dd = runner(["dd", "bs=1M", "if=/dev/zero", f"of={path}", f"count={size_mb}"])
    if not dd.ok:
        raise BackingStoreError(f"dd failed for {path}", dd.message)
    mkfs = runner(["mkdosfs", str(path), "-F", "32", "-I"])
    if not mkfs.ok:
        raise BackingStoreError(f"mkdosfs failed for {path}", mkfs.message)


def parse_size(raw: str) -> int | None:
    try:
        value = int(raw)
    except ValueError:
        return None
    if value <= 0:
        return None
    return value


def size_backing_store(context: SetupContext) -> BackingStoreSpec:
    """Create the backing image unless it exists, negotiating size when short on space.

    Raises:
        SetupAborted: If the operator chooses to abort
        BackingStoreError: If image creation fails
    """
    config = context.config
    prompter = context.prompter
    spec = BackingStoreSpec(
        path=config.backing_file,
        requested_mb=config.usb_file_size_mb,
        buffer_mb=config.space_buffer_mb,
    )
    context.report.backing_store = spec

    if spec.path.exists():
        spec.exists = True
        prompter.say(f"{spec.path} already exists")
        log.info(f"Keeping existing backing store {spec.path}")
        return spec

    state = PromptState.PROMPTING
    while state is PromptState.PROMPTING:
        spec.available_mb = get_available_space_mb(config.free_space_root)
        log.debug(
            f"Space check: required={spec.required_mb} MB "
            f"available={spec.available_mb} MB"
        )
        if spec.has_enough_space:
            create_usb_file(spec.path, spec.requested_mb, context.run)
            spec.created_mb = spec.requested_mb
            state = PromptState.RESOLVED
        else:
            state = _negotiate_size(spec, context)

    if state is PromptState.ABORTED:
        prompter.say("USB file creation aborted.")
        raise SetupAborted("backing store", "creation declined")

    return spec


def _negotiate_size(spec: BackingStoreSpec, context: SetupContext) -> PromptState:
    """Run the insufficient-space menu against the last measurement.

    Returns PROMPTING when the operator entered a new size and space must be
    measured again, RESOLVED once the image was created, ABORTED otherwise.
    """
    prompter = context.prompter
    while True:
        prompter.say(
            f"Not enough space available. Required: {spec.required_mb} MB, "
            f"Available: {spec.available_mb} MB"
        )
        prompter.say(
            f"1. Create file with maximum available size ({spec.max_possible_mb} MB)"
        )
        prompter.say("2. Enter a new size manually")
        prompter.say("3. Abort")
        choice = prompter.choose(
            "Please choose an option (1, 2, or 3):", SIZE_MENU_OPTIONS
        )

        if choice == CHOICE_MAX_SIZE:
            if spec.max_possible_mb <= 0:
                prompter.say("No space left for a backing store. Please choose another option.")
                continue
            create_usb_file(spec.path, spec.max_possible_mb, context.run)
            spec.created_mb = spec.max_possible_mb
            return PromptState.RESOLVED
        if choice == CHOICE_ABORT:
            return PromptState.ABORTED

        new_size = parse_size(
            prompter.ask(f"Enter the new size in MB (less than {spec.max_possible_mb}):")
        )
        if new_size is not None:
            spec.requested_mb = new_size
            log.info(f"Requested backing store size changed to {new_size} MB")
            return PromptState.PROMPTING
        prompter.say("Invalid size. Please try again.")
        if prompter.input_closed:
            return PromptState.ABORTED
