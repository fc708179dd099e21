"""
Pytest configuration and shared fixtures for rpi-usb-share tests.

Every test runs against a fake host laid out under ``tmp_path``; external
commands go through a recording fake runner and operator answers come from
a scripted input stream.
"""

import io
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.app.prompts import Prompter
from rpi_usb_share.config.settings import RunConfig
from rpi_usb_share.services.commands import CommandResult


COMPATIBLE_MODEL = "Raspberry Pi Zero W Rev 1.1"
CMDLINE_CONTENT = "console=serial0,115200 console=tty1 root=PARTUUID=abc-02 rootwait\n"
MB = 1024 * 1024


# ==============================================================================
# Fake Command Runner
# ==============================================================================


class FakeRunner:
    """Records commands and returns scripted results.

    ``failures`` maps a command prefix (tuple of leading args) to the number
    of times it should fail before succeeding; -1 means always fail.
    """

    def __init__(self, failures: Optional[Dict[Tuple[str, ...], int]] = None):
        self.calls: List[Tuple[str, ...]] = []
        self.failures = dict(failures or {})

    def __call__(self, args: Sequence[str], *, cwd: Optional[Path] = None) -> CommandResult:
        command = tuple(args)
        self.calls.append(command)
        for prefix, remaining in self.failures.items():
            if command[: len(prefix)] == prefix and remaining != 0:
                if remaining > 0:
                    self.failures[prefix] = remaining - 1
                return CommandResult(args=command, returncode=1, stderr="simulated failure")
        return CommandResult(args=command, returncode=0)

    def called(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == prefix for call in self.calls)

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if call[: len(prefix)] == prefix)


# ==============================================================================
# Host Layout Fixtures
# ==============================================================================


@pytest.fixture
def host_root(tmp_path) -> Path:
    """Fake root filesystem with the files the provisioning steps touch."""
    (tmp_path / "proc" / "device-tree").mkdir(parents=True)
    (tmp_path / "proc" / "device-tree" / "model").write_bytes(
        COMPATIBLE_MODEL.encode() + b"\x00"
    )
    (tmp_path / "boot").mkdir()
    (tmp_path / "boot" / "config.txt").write_text("[all]\narm_64bit=0\n")
    (tmp_path / "boot" / "cmdline.txt").write_text(CMDLINE_CONTENT)
    (tmp_path / "etc" / "samba").mkdir(parents=True)
    (tmp_path / "etc" / "modules").write_text("i2c-dev\n")
    (tmp_path / "etc" / "fstab").write_text("proc /proc proc defaults 0 0\n")
    (tmp_path / "etc" / "samba" / "smb.conf").write_text("[global]\n    workgroup = WORKGROUP\n")
    (tmp_path / "mnt").mkdir()
    (tmp_path / "work").mkdir()
    (tmp_path / "work" / "usbshare.py").write_text("print('watchdog')\n")
    return tmp_path


@pytest.fixture
def run_config(host_root) -> RunConfig:
    return RunConfig(
        model_path=host_root / "proc" / "device-tree" / "model",
        boot_config_path=host_root / "boot" / "config.txt",
        modules_path=host_root / "etc" / "modules",
        cmdline_path=host_root / "boot" / "cmdline.txt",
        backing_file=host_root / "piusb.bin",
        mount_folder=host_root / "mnt" / "usb_share",
        fstab_path=host_root / "etc" / "fstab",
        smb_conf_path=host_root / "etc" / "samba" / "smb.conf",
        script_dir=host_root / "work",
        script_install_path=host_root / "usr" / "local" / "share" / "usbshare.py",
        unit_path=host_root / "etc" / "systemd" / "system" / "usbshare.service",
        free_space_root=host_root,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def systemctl_available(monkeypatch):
    """Pretend systemctl is on PATH so systemctl calls reach the fake runner."""
    monkeypatch.setattr(
        "rpi_usb_share.services.commands.shutil.which",
        lambda name: f"/usr/bin/{name}",
    )


@pytest.fixture
def free_space(mocker):
    """Set the free space reported for the root filesystem, in MB."""

    def _set(megabytes: int):
        return mocker.patch(
            "rpi_usb_share.storage.backing_store.psutil.disk_usage",
            return_value=SimpleNamespace(free=megabytes * MB),
        )

    return _set


# ==============================================================================
# Context Helpers
# ==============================================================================


def scripted_prompter(*answers: str) -> Prompter:
    text = "".join(f"{answer}\n" for answer in answers)
    return Prompter(stdin=io.StringIO(text), stdout=io.StringIO())


@pytest.fixture
def make_context(run_config, fake_runner):
    """Build a SetupContext with scripted operator answers."""

    def _make(*answers: str, config: Optional[RunConfig] = None, runner=None) -> SetupContext:
        return SetupContext(
            config=config or run_config,
            prompter=scripted_prompter(*answers),
            run=runner or fake_runner,
        )

    return _make


@pytest.fixture
def runner_factory():
    """Build a FakeRunner with scripted failures."""
    return FakeRunner
