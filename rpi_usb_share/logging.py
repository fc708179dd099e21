from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "RPI_USB_SHARE_LOG_DIR",
        Path.home() / ".local" / "state" / "rpi-usb-share" / "logs",
    )
)


def _should_log_command_output(record) -> bool:
    """Command stdout/stderr dumps are only shown in TRACE mode on the console."""
    tags = record["extra"].get("tags", [])
    if "command-output" in tags:
        return record["level"].no <= logger.level("TRACE").no
    return True


def setup_logging(
    *,
    debug: bool = False,
    trace: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup logging sinks for a provisioning run.

    Log Files:
    - operations.log: INFO+ events (7 day retention)
    - debug.log: DEBUG+ events when --debug or --trace is enabled (3 day retention)
    - structured.jsonl: Structured JSON logs for analysis (7 day retention)

    The console sink writes to stderr so that operator prompts on stdout
    stay readable.

    Args:
        debug: Enable DEBUG level logging
        trace: Enable TRACE level logging (very verbose)
        log_dir: Custom log directory (defaults to ~/.local/state/rpi-usb-share/logs)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    if trace:
        console_level = "TRACE"
    elif debug:
        console_level = "DEBUG"
    else:
        console_level = "INFO"

    # SINK 1: Console (stderr)
    logger.add(
        sys.stderr,
        level=console_level,
        backtrace=False,
        diagnose=False,
        filter=_should_log_command_output,
        colorize=True,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[source]: <10}</cyan> | "
            "{message}"
        ),
    )

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    # SINK 2: Operations Log (INFO+)
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <10} | "
            "{extra[job_id]: <15} | "
            "{message}"
        ),
    )

    # SINK 3: Debug Log (DEBUG+ when debug=True)
    if debug or trace:
        logger.add(
            log_dir / "debug.log",
            level="TRACE" if trace else "DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <10} | "
                "{extra[job_id]: <15} | "
                "{extra[tags]} | "
                "{message}"
            ),
        )

    # SINK 4: Structured JSON Log (INFO+)
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        serialize=True,
        format="{message}",
    )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking a run
        tags: Tags for filtering (e.g., ["packages", "apt"])
        source: Source component (e.g., "storage", "share")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking a provisioning step with automatic timing.

    Logs step start, completion, and failure with duration tracking.

    Example:
        with operation_context("packages") as log:
            log.debug("Refreshing package index")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.info(f"{operation.capitalize()} started")

        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.

    Each factory method returns a logger pre-configured with appropriate
    source and tags for the domain.
    """

    @staticmethod
    def for_setup(job_id: str | None = None) -> Logger:
        """Logger for the orchestration driver."""
        if job_id is None:
            job_id = f"setup-{uuid.uuid4().hex[:8]}"
        return get_logger(job_id=job_id, source="setup", tags=["setup"])

    @staticmethod
    def for_packages() -> Logger:
        """Logger for apt package provisioning."""
        return get_logger(source="packages", tags=["packages", "apt"])

    @staticmethod
    def for_storage() -> Logger:
        """Logger for backing store and mount operations."""
        return get_logger(source="storage", tags=["storage"])

    @staticmethod
    def for_share() -> Logger:
        """Logger for Samba share publishing."""
        return get_logger(source="share", tags=["share", "samba"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for system operations (boot config, services, commands)."""
        return get_logger(source="system", tags=["system"])
