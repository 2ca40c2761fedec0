"""Console logging setup for the deployer.

Log lines carry a timestamp and a severity marker and are coloured by level,
so transaction progress and failure classification stay readable in a
terminal session.
"""

import logging
import sys

from colorama import Fore, Style, just_fix_windows_console

# Between INFO and WARNING, used for successful outcomes
SUCCESS: int = 25
logging.addLevelName(SUCCESS, "SUCCESS")


class SeverityFormatter(logging.Formatter):
    """Formatter producing ``[HH:MM:SS]-[level] : message`` in level colours."""

    LEVEL_COLORS: dict[int, str] = {
        logging.DEBUG: Fore.MAGENTA,
        logging.INFO: Fore.BLUE,
        SUCCESS: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_color: bool = True) -> None:
        super().__init__(
            fmt="[%(asctime)s]-[%(levelname)s] : %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the untouched record
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = record.levelname.lower()
        line = super().format(record)
        if not self.use_color:
            return line
        color = self.LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{line}{Style.RESET_ALL}"


def setup_logging(level: str = "INFO", use_color: bool | None = None) -> None:
    """Configure root logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_color: Force colours on or off; defaults to whether stdout is a TTY
    """
    if use_color is None:
        use_color = sys.stdout.isatty()
    if use_color:
        just_fix_windows_console()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SeverityFormatter(use_color=use_color))

    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    # web3 and its HTTP stack are chatty at DEBUG
    for noisy in ("web3", "urllib3", "asyncio"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))
