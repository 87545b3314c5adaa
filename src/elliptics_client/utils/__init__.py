"""
Logging utilities.
"""

from elliptics_client.utils.logger import LoggerFactory, MaxLevelFilter, setup_logger

__all__ = [
    'LoggerFactory',
    'MaxLevelFilter',
    'setup_logger',
]
