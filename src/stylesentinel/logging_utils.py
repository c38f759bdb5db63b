from __future__ import annotations

import logging
import sys

LOGGER_NAME = "stylesentinel"

_PLAIN_FORMAT = "StyleSentinel: %(message)s"
_DEBUG_FORMAT = "StyleSentinel [%(levelname)s] %(name)s: %(message)s"


def log_level(*, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    """
    Route `stylesentinel.*` log records to stderr.

    stdout is reserved for reports (JSON, SARIF, ...). Calling this again
    replaces the previous handler, so the stream in effect at call time wins.
    """

    level = log_level(verbose=verbose, quiet=quiet)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT if verbose else _PLAIN_FORMAT))

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
