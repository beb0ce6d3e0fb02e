"""Logging setup for the pkgtrend command line."""

import logging
import sys

logger = logging.getLogger("pkgtrend")

DEFAULT_FORMAT = "%(message)s"
VERBOSE_FORMAT = "%(asctime)s %(levelname)s %(threadName)s: %(message)s"
VERBOSE_DATEFMT = "%H:%M:%S"

# HTTP client loggers that flood debug output with one line per request
HTTP_LOGGERS = ("urllib3", "requests")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the pkgtrend logger for a CLI run.

    Default output is INFO with bare messages. ``verbose`` switches to DEBUG
    with timestamps and the worker thread name, since registry pages are
    fetched in parallel. ``quiet`` shows only warnings and takes precedence.
    The HTTP client loggers stay at WARNING in every mode.
    """
    logger.handlers.clear()

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if verbose and not quiet:
        handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, VERBOSE_DATEFMT))
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(level)

    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
