"""Run configuration for a provisioning run."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from loguru import logger


SETTINGS_PATH = Path(
    os.environ.get(
        "RPI_USB_SHARE_SETTINGS_PATH",
        Path.home() / ".config" / "rpi-usb-share" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_USB_FILE_SIZE_MB = 2048
SPACE_BUFFER_MB = 1024

DEFAULT_COMPATIBLE_MODELS = ("Raspberry Pi Zero W Rev 1.1",)
DEFAULT_PACKAGES = ("samba", "winbind", "python3-pip", "python3-watchdog")

DEFAULT_MODEL_PATH = Path("/proc/device-tree/model")
DEFAULT_BOOT_CONFIG_PATH = Path("/boot/config.txt")
DEFAULT_MODULES_PATH = Path("/etc/modules")
DEFAULT_CMDLINE_PATH = Path("/boot/cmdline.txt")
DEFAULT_BACKING_FILE = Path("/piusb.bin")
DEFAULT_MOUNT_FOLDER = Path("/mnt/usb_share")
DEFAULT_FSTAB_PATH = Path("/etc/fstab")
DEFAULT_SMB_CONF_PATH = Path("/etc/samba/smb.conf")
DEFAULT_SCRIPT_NAME = "usbshare.py"
DEFAULT_SCRIPT_INSTALL_PATH = Path("/usr/local/share/usbshare.py")
DEFAULT_UNIT_PATH = Path("/etc/systemd/system/usbshare.service")
DEFAULT_WLAN_INTERFACE = "wlan0"
DEFAULT_FREE_SPACE_ROOT = Path("/")

ISSUES_URL = "https://github.com/mrfenyx/RPi-Zero-W-WiFi-USB"

# Keys that can never be overridden from the settings file
_FIXED_KEYS = {"usb_file_size_mb", "space_buffer_mb"}


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration threaded through every provisioning step."""

    usb_file_size_mb: int = DEFAULT_USB_FILE_SIZE_MB
    space_buffer_mb: int = SPACE_BUFFER_MB
    compatible_models: tuple[str, ...] = DEFAULT_COMPATIBLE_MODELS
    packages: tuple[str, ...] = DEFAULT_PACKAGES
    model_path: Path = DEFAULT_MODEL_PATH
    boot_config_path: Path = DEFAULT_BOOT_CONFIG_PATH
    modules_path: Path = DEFAULT_MODULES_PATH
    cmdline_path: Path = DEFAULT_CMDLINE_PATH
    backing_file: Path = DEFAULT_BACKING_FILE
    mount_folder: Path = DEFAULT_MOUNT_FOLDER
    fstab_path: Path = DEFAULT_FSTAB_PATH
    smb_conf_path: Path = DEFAULT_SMB_CONF_PATH
    script_dir: Path = Path(".")
    script_name: str = DEFAULT_SCRIPT_NAME
    script_install_path: Path = DEFAULT_SCRIPT_INSTALL_PATH
    unit_path: Path = DEFAULT_UNIT_PATH
    wlan_interface: str = DEFAULT_WLAN_INTERFACE
    free_space_root: Path = DEFAULT_FREE_SPACE_ROOT

    @property
    def script_source(self) -> Path:
        return self.script_dir / self.script_name

    @property
    def unit_name(self) -> str:
        return self.unit_path.name


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, Path):
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name} must be a non-empty path string")
        return Path(value)
    if isinstance(default, tuple):
        if not isinstance(value, list) or not all(
            isinstance(item, str) and item for item in value
        ):
            raise ValueError(f"{name} must be a list of non-empty strings")
        return tuple(value)
    if isinstance(default, str):
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name} must be a non-empty string")
        return value
    raise ValueError(f"{name} cannot be overridden")


def load_config(path: Path | None = None, **overrides: Any) -> RunConfig:
    """Build a RunConfig from defaults, the optional settings file, and overrides.

    The settings file is a JSON object whose keys are RunConfig field names.
    The image size and the space buffer are fixed and never read from it.
    Explicit keyword overrides (from the CLI) win over the file.
    """
    config = RunConfig()
    settings_path = path or SETTINGS_PATH
    file_values: dict[str, Any] = {}
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            logger.warning(f"Ignoring unreadable settings file {settings_path}: {error}")
            data = None
        if isinstance(data, dict):
            file_values = data

    known = {field.name for field in fields(RunConfig)}
    updates: dict[str, Any] = {}
    for key, value in file_values.items():
        if key not in known or key in _FIXED_KEYS:
            logger.warning(f"Ignoring unsupported setting {key!r}")
            continue
        try:
            updates[key] = _coerce(key, value, getattr(config, key))
        except ValueError as error:
            logger.warning(f"Ignoring setting {key!r}: {error}")
    updates.update({key: value for key, value in overrides.items() if value is not None})
    return replace(config, **updates)
