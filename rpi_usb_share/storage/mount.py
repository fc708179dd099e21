"""Mount directory resolution and persistent fstab registration.

Functions:
    - resolve_mount_directory(): pick, create, or reuse the share directory
    - prepare_directory(): create a directory and make it world-writable
    - register_fstab_entry(): append the backing store line to /etc/fstab
    - activate_mounts(): run ``mount -a``
    - register_mount(): all of the above in order
"""

from __future__ import annotations

import os
from pathlib import Path

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import MountDecision, MountSpec
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.storage.exceptions import MountRegistrationError, SetupAborted


log = LoggerFactory.for_storage()

WORLD_WRITABLE = 0o777


def prepare_directory(path: Path, *, create: bool) -> None:
    """Optionally create ``path`` (no parents), then chmod it 777.

    An alternate directory is not checked for existence before creation, so
    an already-present directory is tolerated with a warning and reused.

    Raises:
        MountRegistrationError: If the directory cannot be created or chmodded
    """
    if create:
        try:
            path.mkdir()
            log.info(f"Created mount folder {path}")
        except FileExistsError:
            if not path.is_dir():
                raise MountRegistrationError(
                    f"{path} exists and is not a directory"
                ) from None
            log.warning(f"Mount folder {path} already existed; using it")
        except OSError as error:
            raise MountRegistrationError(f"cannot create {path}", str(error)) from error
    try:
        os.chmod(path, WORLD_WRITABLE)
    except OSError as error:
        raise MountRegistrationError(f"cannot chmod {path}", str(error)) from error


def resolve_mount_directory(context: SetupContext) -> MountSpec:
    """Decide which directory the backing store is mounted on.

    Raises:
        SetupAborted: If the default exists and the operator declines both
            reusing it and creating another one
    """
    prompter = context.prompter
    default_path = context.config.mount_folder
    spec = MountSpec(default_path=default_path, path=default_path)
    context.report.mount = spec

    if not default_path.is_dir():
        spec.decision = MountDecision.CREATE_DEFAULT
        prepare_directory(default_path, create=True)
        return spec

    spec.default_existed = True
    prompter.say(f"Mount folder {default_path} already exists.")
    if prompter.confirm("Do you want to use this existing folder? (y/n)"):
        spec.decision = MountDecision.REUSE
        prepare_directory(default_path, create=False)
        return spec

    if not prompter.confirm("Do you want to create a different folder? (y/n)"):
        spec.decision = MountDecision.ABORT
        prompter.say("Mounting process aborted.")
        raise SetupAborted("mount", "no mount folder chosen")

    answer = prompter.ask(
        "Enter the name for the new mount folder (e.g., /mnt/new_folder):"
    )
    if not answer:
        spec.decision = MountDecision.ABORT
        prompter.say("Mounting process aborted.")
        raise SetupAborted("mount", "empty mount folder name")

    spec.decision = MountDecision.CREATE_ALTERNATE
    spec.path = Path(answer)
    prepare_directory(spec.path, create=True)
    return spec


def register_fstab_entry(fstab_path: Path, line: str) -> None:
    try:
        with fstab_path.open("a", encoding="utf-8") as handle:
            handle.write(f"{line}\n")
    except OSError as error:
        raise MountRegistrationError(f"cannot update {fstab_path}", str(error)) from error
    log.info(f"Registered fstab entry: {line}")


def activate_mounts(context: SetupContext) -> bool:
    """Run ``mount -a``; a failure is logged and the run carries on."""
    result = context.run(["mount", "-a"])
    if not result.ok:
        log.warning(f"mount -a failed: {result.message}")
        return False
    return True


def register_mount(context: SetupContext) -> MountSpec:
    spec = resolve_mount_directory(context)
    register_fstab_entry(
        context.config.fstab_path, spec.fstab_line(context.config.backing_file)
    )
    if activate_mounts(context):
        context.prompter.say(f"Backing store mounted on {spec.path}")
    return spec
