"""Tests for app/orchestrator.py - the full provisioning sequence."""

import pytest

from rpi_usb_share.app.orchestrator import offer_reboot, run_setup
from rpi_usb_share.config.settings import ISSUES_URL
from rpi_usb_share.domain.models import CompatibilityOutcome, MountDecision
from rpi_usb_share.storage.exceptions import (
    CompanionScriptMissingError,
    SetupAborted,
)


EXPECTED_COMMANDS = [
    ("apt-get", "update"),
    ("apt-get", "upgrade", "-y"),
    ("apt-get", "install", "-y", "samba", "winbind", "python3-pip", "python3-watchdog"),
    ("iw", "wlan0", "set", "power_save", "off"),
]


class TestRunSetup:
    def test_end_to_end_on_known_hardware(
        self, make_context, run_config, fake_runner, free_space
    ):
        free_space(4000)
        context = make_context("n")

        report = run_setup(context)

        assert report.compatibility.outcome == CompatibilityOutcome.PROCEED
        assert report.backing_store.required_mb == 3072
        assert report.backing_store.created_mb == 2048
        assert report.mount.decision == MountDecision.CREATE_DEFAULT
        assert run_config.mount_folder.is_dir()
        assert run_config.smb_conf_path.read_text().count("[usb]") == 1
        assert report.unit.name == "usbshare.service"
        assert report.rebooted is False

        backing = str(run_config.backing_file)
        assert fake_runner.calls == EXPECTED_COMMANDS + [
            ("dd", "bs=1M", "if=/dev/zero", f"of={backing}", "count=2048"),
            ("mkdosfs", backing, "-F", "32", "-I"),
            ("mount", "-a"),
            ("systemctl", "restart", "smbd"),
            ("systemctl", "daemon-reload"),
            ("systemctl", "enable", "usbshare.service"),
            ("systemctl", "start", "usbshare.service"),
        ]

        output = context.prompter.stdout.getvalue()
        assert "Detected compatible hardware" in output
        assert "Not enough space" not in output
        assert ISSUES_URL not in output
        assert output.rstrip().endswith("Reboot cancelled. Please reboot manually later.")

    def test_reboot_accepted(self, make_context, fake_runner, free_space):
        free_space(4000)
        context = make_context("y")

        report = run_setup(context)

        assert report.rebooted is True
        assert fake_runner.calls[-1] == ("systemctl", "reboot")
        assert "Reboot cancelled" not in context.prompter.stdout.getvalue()

    def test_unknown_hardware_requests_feedback(
        self, make_context, run_config, free_space
    ):
        free_space(4000)
        run_config.model_path.write_bytes(b"Raspberry Pi 3 Model B Plus Rev 1.3\x00")
        context = make_context("y", "n")

        report = run_setup(context)

        assert report.compatibility.outcome == CompatibilityOutcome.PROCEED_WITH_WARNING
        output = context.prompter.stdout.getvalue()
        assert ISSUES_URL in output
        assert output.index(ISSUES_URL) < output.index("Do you want to reboot now?")

    def test_missing_script_stops_after_share(
        self, make_context, run_config, fake_runner, free_space
    ):
        free_space(4000)
        (run_config.script_dir / "usbshare.py").unlink()
        context = make_context("y")

        with pytest.raises(CompanionScriptMissingError):
            run_setup(context)

        # Mount and share ran before the service installer
        assert fake_runner.count("mount", "-a") == 1
        assert fake_runner.count("systemctl", "restart", "smbd") == 1
        assert fake_runner.calls[-1] == ("systemctl", "restart", "smbd")
        assert not fake_runner.called("systemctl", "daemon-reload")
        assert not fake_runner.called("systemctl", "reboot")
        assert "Do you want to reboot now?" not in context.prompter.stdout.getvalue()

    def test_mount_failure_still_publishes_share_and_offers_reboot(
        self, make_context, run_config, runner_factory, free_space
    ):
        free_space(4000)
        runner = runner_factory({("mount", "-a"): -1})
        context = make_context("n", runner=runner)

        report = run_setup(context)

        assert "[usb]" in run_config.smb_conf_path.read_text()
        assert report.unit.name == "usbshare.service"
        assert runner.called("systemctl", "start", "usbshare.service")
        assert "Reboot cancelled" in context.prompter.stdout.getvalue()

    def test_service_enable_failure_still_offers_reboot(
        self, make_context, runner_factory, free_space
    ):
        free_space(4000)
        runner = runner_factory({("systemctl", "enable"): -1})
        context = make_context("y", runner=runner)

        report = run_setup(context)

        assert "Do you want to reboot now?" in context.prompter.stdout.getvalue()
        assert report.rebooted is True
        assert runner.calls[-1] == ("systemctl", "reboot")

    def test_abort_at_gate_runs_nothing(self, make_context, run_config, fake_runner):
        run_config.model_path.write_bytes(b"Orange Pi Zero\x00")
        context = make_context("n")

        with pytest.raises(SetupAborted):
            run_setup(context)

        assert fake_runner.calls == []
        assert "dtoverlay" not in run_config.boot_config_path.read_text()

    def test_abort_leaves_earlier_mutations_in_place(
        self, make_context, run_config, fake_runner, free_space
    ):
        free_space(2000)
        context = make_context("3")

        with pytest.raises(SetupAborted):
            run_setup(context)

        assert "dtoverlay=dwc2" in run_config.boot_config_path.read_text()
        assert not fake_runner.called("mount")

    def test_second_run_duplicates_boot_and_share_config(
        self, make_context, run_config, free_space
    ):
        free_space(4000)
        run_setup(make_context("n"))
        run_config.backing_file.write_bytes(b"")
        run_setup(make_context("y", "n"))

        assert run_config.boot_config_path.read_text().count("dtoverlay=dwc2") == 2
        assert run_config.smb_conf_path.read_text().count("[usb]") == 2


class TestOfferReboot:
    def test_reboot_failure_is_reported(self, make_context, runner_factory):
        runner = runner_factory({("systemctl", "reboot"): -1})
        context = make_context("yes", runner=runner)

        assert offer_reboot(context) is False
        assert "Reboot failed" in context.prompter.stdout.getvalue()
