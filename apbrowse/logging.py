# apbrowse/logging.py
"""
Logging setup.

The interactive client draws over the whole terminal, so log records go to
a file instead of stderr.
"""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_file: Path | str = "debug.log", verbose: bool = False) -> Path:
    """
    Send apbrowse log records to log_file.

    Safe to call more than once: handlers installed by an earlier call
    are replaced.

    Returns the log file path.
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("apbrowse")
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False

    return log_file
