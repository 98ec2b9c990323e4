# src/config/logging_config.py

"""Per-run logging configuration for price_watch.

Every process start (bot or one-shot CLI) writes to its own file in
``logs/``, e.g. ``logs/run_20260214_060000.log``.  Scheduler firings and
chat commands from all owners land in the same file so a single run can
be replayed end to end.

Third-party loggers that poll in the background (``apscheduler``,
``httpx`` used by python-telegram-bot) are capped at WARNING so the
twice-daily firing records are not buried under heartbeat noise.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS: tuple[str, ...] = ("apscheduler", "httpx", "telegram")


def setup_logging(
    logs_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path:
    """Initialise the ``price_watch`` logger for the current run.

    Args:
        logs_dir: Directory for the run log (defaults to ``Settings.LOGS_DIR``).
        console_level: Minimum level echoed to stderr.

    Returns:
        The :class:`~pathlib.Path` of this run's log file.
    """
    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("price_watch")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, CLI re-entry) keep the first handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
