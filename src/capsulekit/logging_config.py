"""Console logging for the capsulekit CLI."""

import logging
import re
import sys
from typing import Optional, TextIO

RESET = "\033[0m"
BOLD = "\033[1m"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

# Bracketed tags that open log messages, e.g. "[RESOLVER] Resolved 3/3 ..."
PREFIX_COLORS = {
    "REGISTRY": "\033[96m",
    "RESOLVER": "\033[95m",
    "LOADER": "\033[94m",
    "WRITER": "\033[97m",
    "CLIENT": "\033[93m",
    "PROJECT": "\033[92m",
}

PREFIX = re.compile(r"\[(" + "|".join(PREFIX_COLORS) + r")\]")


class ColoredFormatter(logging.Formatter):
    """Colors the level name and the service tag of each record."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        level = LEVEL_COLORS.get(record.levelname)
        if level:
            text = text.replace(record.levelname, f"{level}{record.levelname:<7}{RESET}", 1)
        return PREFIX.sub(
            lambda m: f"{PREFIX_COLORS[m.group(1)]}{BOLD}{m.group(0)}{RESET}", text, count=1
        )


def setup_colored_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> None:
    """Route log records to stderr with colors.

    stdout is left to command output, so `--json` results stay parseable.

    Args:
        verbose: Log at DEBUG instead of WARNING
        stream: Destination, stderr by default
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ColoredFormatter("%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
