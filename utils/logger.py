"""
Logging configuration for the Spatial Pipeline.

All pipeline modules log under the 'spatial_pipeline' logger. The console
shows walkthrough progress (INFO by default) and a per-run log file keeps
every DEBUG detail: column lists, geometry types, vertex counts.

Functions:
    setup_logging: Attach console and file handlers, return the log file path
    get_logger: Get a module logger under the project logger
    log_section: Write a banner-framed section title

Example:
    >>> from utils.logger import setup_logging, get_logger
    >>> log_file = setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Loading counties layer")
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

ROOT_LOGGER_NAME = 'spatial_pipeline'
BANNER_WIDTH = 80

CONSOLE_FORMAT = '%(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_dir: Optional[Union[str, Path]] = None,
                  console_level: int = logging.INFO) -> Path:
    """
    Setup logging to console and file.

    Calling it again replaces the handlers of the previous run, so each run
    writes to its own timestamped file.

    Parameters:
    -----------
    log_dir : Optional[Union[str, Path]]
        Directory for log files. Defaults to PROJECT_ROOT/logs
    console_level : int
        Minimum level shown on the console

    Returns:
    --------
    Path
        Path to the created log file (spatial_pipeline_<timestamp>.log)
    """
    log_dir = Path(log_dir) if log_dir else Path(__file__).parent.parent / 'logs'
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"{ROOT_LOGGER_NAME}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    project_logger = logging.getLogger(ROOT_LOGGER_NAME)
    project_logger.setLevel(logging.DEBUG)

    for handler in list(project_logger.handlers):
        project_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    project_logger.addHandler(console)
    project_logger.addHandler(file_handler)

    project_logger.debug(f"Logging initialized: {log_file}")

    return log_file


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a pipeline module.

    Example:
        >>> get_logger('core.combiner').name
        'spatial_pipeline.core.combiner'
    """
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')


def log_section(logger: logging.Logger, title: str, level: int = logging.INFO) -> None:
    """Log title between two '=' rules."""
    logger.log(level, "=" * BANNER_WIDTH)
    logger.log(level, title)
    logger.log(level, "=" * BANNER_WIDTH)
