import logging

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def log_run_event(verbose: bool, level: str, message: str) -> None:
    """Log an analysis event at `level` in verbose runs and at DEBUG otherwise."""

    logging.log(_LEVELS.get(level, logging.INFO) if verbose else logging.DEBUG, message)
