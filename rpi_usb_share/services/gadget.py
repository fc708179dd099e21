"""Enable the dwc2 USB gadget driver through the boot configuration.

Every edit here is append-only and unconditional: running it twice leaves
two copies of each directive.
"""

from __future__ import annotations

from pathlib import Path

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.logging import LoggerFactory


log = LoggerFactory.for_system()

DTOVERLAY_LINE = "dtoverlay=dwc2"
MODULE_LINE = "dwc2"
CMDLINE_FRAGMENT = " modules-load=dwc2 "


def append_line(path: Path, line: str) -> None:
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"{line}\n")
    log.debug(f"Appended {line!r} to {path}")


def append_to_last_line(path: Path, fragment: str) -> None:
    """Append a fragment to the end of the final line, keeping everything else."""
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    lines = content.splitlines(keepends=True)
    if not lines:
        path.write_text(fragment, encoding="utf-8")
        return
    last = lines[-1]
    body = last.rstrip("\r\n")
    ending = last[len(body):]
    lines[-1] = f"{body}{fragment}{ending}"
    path.write_text("".join(lines), encoding="utf-8")
    log.debug(f"Appended {fragment!r} to last line of {path}")


def disable_wifi_power_save(context: SetupContext) -> bool:
    """Best effort: a failure is logged and otherwise ignored."""
    interface = context.config.wlan_interface
    result = context.run(["iw", interface, "set", "power_save", "off"])
    if not result.ok:
        log.warning(f"Could not disable power saving on {interface}: {result.message}")
    return result.ok


def enable_gadget_mode(context: SetupContext) -> None:
    config = context.config
    append_line(config.boot_config_path, DTOVERLAY_LINE)
    append_line(config.modules_path, MODULE_LINE)
    append_to_last_line(config.cmdline_path, CMDLINE_FRAGMENT)
    context.prompter.say("USB gadget driver enabled (dwc2).")
    disable_wifi_power_save(context)
