import argparse
import os
import sys
from pathlib import Path

from rpi_usb_share.__version__ import __version__
from rpi_usb_share.app.context import SetupContext
from rpi_usb_share.app.orchestrator import run_setup
from rpi_usb_share.app.prompts import Prompter
from rpi_usb_share.config.settings import load_config
from rpi_usb_share.logging import LoggerFactory, setup_logging
from rpi_usb_share.storage.exceptions import NotRootError, SetupError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpi-usb-share",
        description="Set up a Raspberry Pi as a USB mass-storage gadget shared over Samba",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Enable trace output (very verbose)")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON settings file overriding paths, packages and known models",
    )
    parser.add_argument(
        "--script-dir",
        type=Path,
        default=None,
        help="Directory containing usbshare.py (default: current directory)",
    )
    parser.add_argument(
        "--skip-root-check",
        action="store_true",
        help="Do not require root privileges",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def ensure_root() -> None:
    euid = os.geteuid()
    if euid != 0:
        raise NotRootError(euid)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_setup()
    log.info(f"rpi-usb-share {__version__} starting")

    try:
        if not args.skip_root_check:
            ensure_root()
        config = load_config(args.settings, script_dir=args.script_dir)
        context = SetupContext(config=config, prompter=Prompter())
        report = run_setup(context)
    except SetupError as error:
        log.error(str(error))
        print(str(error), file=sys.stderr)
        return error.exit_code
    except OSError as error:
        log.exception(f"System error: {error}")
        print(f"System error: {error}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted by operator")
        return 130

    if not report.rebooted:
        log.info("Setup finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
