"""Process-level logging configuration."""

import logging

_LOGGING_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def logging_configure(level: str = "INFO") -> None:
    """Configure root logging once for CLI and API runtimes.

    Existing root handlers are left untouched so host processes keep control.

    Args:
        level: Logging level name.
    """

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=_LOGGING_FORMAT)
    else:
        root_logger.setLevel(level)
