"""Process-level logging setup for the nprofile CLI."""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s\t%(levelname)s\t%(message)s"
DEBUG_FORMAT = "%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(debug: bool = False) -> None:
    """Configure root logging on stderr.

    Args:
        debug: Log at DEBUG level and include logger names
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=DEBUG_FORMAT if debug else DEFAULT_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )


__all__ = ["configure_logging"]
