"""
Logging configuration shared by the CLI and library entry points.
"""

import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level for the root logger
        log_file: Optional file that receives the same records as the console
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # numeric warnings from numpy are routine while evaluating random programs
    logging.getLogger("py.warnings").setLevel(logging.ERROR)
