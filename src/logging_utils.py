"""
Logging for AI Gym Buddy.

Every module logs under the "gymbuddy" hierarchy: `get_logger("server")`
returns "gymbuddy.server", and the core classes take an injected logger
that defaults to one from here. One stream handler is attached to the
"gymbuddy" root on first use; uvicorn and streamlit keep their own loggers.

`main.py` calls `set_verbose(args.verbose or config.debug)` at startup.
GymBuddyApp wraps its logger in a LoggerAdapter so stage-change chatter
only appears when the debug flag is on.
"""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "gymbuddy"

_root_configured = False


def configure_logging(
    level: int = logging.INFO,
    stream: Optional[object] = None,
) -> None:
    """Attach the stream handler to the gymbuddy root. Later calls are ignored."""
    global _root_configured
    if _root_configured:
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    _root_configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, e.g. get_logger(__name__) inside client.py.

    Names imported through the src package ("src.client") lose the prefix;
    names already under gymbuddy are returned as is.
    """
    configure_logging()

    if name.startswith("src."):
        name = name[4:]
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_verbose(verbose: bool) -> None:
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.INFO)


class LoggerAdapter:
    """
    Print-like logging for session diagnostics, dropped unless verbose.

    Usage:
        log = LoggerAdapter(get_logger("app"), verbose=config.debug)
        log("Stage changed: welcome -> onboarding")
        log.debug("Profile record: ...")

    Warnings and errors go straight to the wrapped `logger`.
    """

    def __init__(self, logger: logging.Logger, verbose: bool = True):
        self.logger = logger
        self.verbose = verbose

    def __call__(self, message: str) -> None:
        if self.verbose:
            self.logger.info(message)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.logger.debug(message)
