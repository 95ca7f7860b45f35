"""Process-wide logging setup shared by the API and the CLI scripts."""

import logging
import time

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure the root logger. Timestamps are UTC to match the trailing Z."""
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
