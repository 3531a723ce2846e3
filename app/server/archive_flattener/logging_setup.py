"""
Console logging for the archive flattener command line.
"""
import logging
import sys


class ColourFormatter(logging.Formatter):
    """
    Formatter that colours the level name for terminal output.
    """

    COLOURS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLOURS:
            record.levelname = f"{self.COLOURS[levelname]}{levelname:<8}{self.COLOURS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(log_level: str = 'INFO', colour: bool = True) -> logging.Logger:
    """
    Send log records at ``log_level`` and above to stderr.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        colour: Colour the level names

    Returns:
        The root logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    fmt = '[%(asctime)s] %(levelname)s | %(name)-12s | %(message)s'
    formatter_cls = ColourFormatter if colour else logging.Formatter
    handler.setFormatter(formatter_cls(fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)

    return logger
