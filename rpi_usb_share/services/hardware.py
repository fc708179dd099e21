"""Hardware compatibility gate."""

from __future__ import annotations

from pathlib import Path

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import CompatibilityDecision, CompatibilityOutcome
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.storage.exceptions import SetupAborted


log = LoggerFactory.for_system()


def read_hardware_model(path: Path) -> str:
    """Read the board model string from the device tree.

    A read failure returns an empty string, which never matches the
    allow-list and so falls through to the warning path.
    """
    try:
        raw = path.read_bytes()
    except OSError as error:
        log.warning(f"Unable to read hardware model from {path}: {error}")
        return ""
    return raw.decode("utf-8", errors="replace").rstrip("\x00").strip()


def is_model_compatible(model: str, compatible_models: tuple[str, ...]) -> bool:
    return model in compatible_models


def check_compatibility(context: SetupContext) -> CompatibilityDecision:
    """Decide whether to proceed on the detected board.

    Raises:
        SetupAborted: If the board is unknown and the operator declines
    """
    config = context.config
    prompter = context.prompter
    model = read_hardware_model(config.model_path)
    log.debug(f"Detected hardware model: {model!r}")

    if is_model_compatible(model, config.compatible_models):
        prompter.say(f"Detected compatible hardware: {model}")
        outcome = CompatibilityOutcome.PROCEED
    else:
        prompter.say(f"Detected hardware: {model}")
        prompter.say(
            "This hardware model is not in the list of known compatible models. "
            "The script might not work as expected."
        )
        if not prompter.confirm("Do you want to continue anyway? (y/n)"):
            prompter.say("Aborting script due to potential compatibility issues.")
            context.report.compatibility = CompatibilityDecision(
                model, config.compatible_models, CompatibilityOutcome.ABORT
            )
            raise SetupAborted("compatibility check", "unknown hardware declined")
        log.warning(f"Continuing on unverified hardware: {model!r}")
        outcome = CompatibilityOutcome.PROCEED_WITH_WARNING

    decision = CompatibilityDecision(model, config.compatible_models, outcome)
    context.report.compatibility = decision
    return decision
