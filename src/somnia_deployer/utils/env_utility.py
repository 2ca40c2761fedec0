import logging
from pathlib import Path

from dotenv import load_dotenv, set_key

logger = logging.getLogger(__name__)


class EnvStore:
    """Reads and updates the ``.env`` file holding the deployer settings."""

    def __init__(self, path: str | Path = ".env") -> None:
        self.path = Path(path)

    def load(self) -> bool:
        """Load the file into the process environment without overriding set variables."""
        return load_dotenv(self.path, override=False)

    def update(self, key: str, value: str) -> None:
        """
        Set ``KEY=VALUE`` in the file.

        Replaces the line in place when the key exists, otherwise appends it;
        all other lines are kept verbatim.
        """
        self.path.touch(exist_ok=True)
        set_key(self.path, key, value, quote_mode="never")
        logger.info(f"📝 {self.path.name} file updated: {key}={value}")
