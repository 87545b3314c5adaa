import logging
import sys
import datetime as dt
from pathlib import Path
from typing import Optional, Union


class MaxLevelFilter(logging.Filter):
    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


def setup_logger(
    name: str,
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.WARNING,
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    daily_rotation: bool = True,
    console_output: bool = False
) -> logging.Logger:
    """
    Setup and configure a logger with optional file handler and console output.

    :param name: Logger name (e.g., 'elliptics.client')
    :param log_dir: Directory to store log files; no file handler when None
    :param level: Logging level (default: logging.WARNING)
    :param log_format: Log message format string
    :param daily_rotation: If True, creates separate log file per day (default: True)
    :param console_output: If True, also outputs logs to console (default: False)

    :return: Configured logger where:
    1. FILE (if log_dir is given) receives logs at `level` and above.
    2. CONSOLE (if enabled) receives ONLY INFO logs (blocks Warnings/Errors).
    Without either handler records propagate to the application's root logger.

    Example:
        >>> logger = setup_logger('elliptics.client', 'data/logs/elliptics')
        >>> logger.warning('Proxy returned 500')

        >>> # With console output enabled
        >>> logger = setup_logger('elliptics.batch', console_output=True)
        >>> logger.info('Batch started')
    """
    logger = logging.getLogger(name)

    # First configuration wins: no duplicate handlers, no level override
    if logger.handlers or logger.level != logging.NOTSET:
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(log_format)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        if daily_rotation:
            log_date = dt.datetime.now().strftime('%Y-%m-%d')
            log_file = log_path / f"logs_{log_date}.log"
        else:
            log_file = log_path / f"{name.replace('.', '_')}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        # Keep warnings and errors off stdout
        console_handler.addFilter(MaxLevelFilter(logging.INFO))
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

    return logger


class LoggerFactory:
    """
    Factory class for creating loggers with consistent configuration.
    Useful when several clients should log with the same settings.

    Example:
        >>> factory = LoggerFactory(log_dir='data/logs/elliptics', level=logging.INFO)
        >>> logger1 = factory.get_logger('elliptics.images')
        >>> logger2 = factory.get_logger('elliptics.documents')
    """

    def __init__(
        self,
        log_dir: Optional[Union[str, Path]] = None,
        level: int = logging.WARNING,
        log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        daily_rotation: bool = True,
        console_output: bool = False
    ):
        self.log_dir = log_dir
        self.level = level
        self.log_format = log_format
        self.daily_rotation = daily_rotation
        self.console_output = console_output

    def get_logger(self, name: str) -> logging.Logger:
        """
        Create a logger with the factory's configuration.

        :param name: Logger name

        :return: Configured logger instance
        """
        return setup_logger(
            name=name,
            log_dir=self.log_dir,
            level=self.level,
            log_format=self.log_format,
            daily_rotation=self.daily_rotation,
            console_output=self.console_output
        )
