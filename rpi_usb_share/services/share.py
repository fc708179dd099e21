"""Samba share publishing."""

from __future__ import annotations

from pathlib import Path

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.domain.models import ShareStanza
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.services.commands import restart_service


log = LoggerFactory.for_share()

SAMBA_SERVICE = "smbd"


def append_stanza(conf_path: Path, stanza: ShareStanza) -> None:
    # No check for an existing [usb] section; repeated runs duplicate it.
    with conf_path.open("a", encoding="utf-8") as handle:
        handle.write(stanza.render())
    log.info(f"Appended [{stanza.name}] share for {stanza.path} to {conf_path}")


def publish_share(context: SetupContext, mount_path: Path) -> ShareStanza:
    stanza = ShareStanza(path=mount_path)
    append_stanza(context.config.smb_conf_path, stanza)
    context.report.share = stanza

    result = restart_service(SAMBA_SERVICE, context.run)
    if not result.ok:
        log.warning(f"Restarting {SAMBA_SERVICE} failed: {result.message}")
    else:
        context.prompter.say(f"Samba share [{stanza.name}] published at {mount_path}")
    return stanza
