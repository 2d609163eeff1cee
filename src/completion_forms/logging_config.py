"""Logging configuration for the completion form engine."""
import logging
import sys
import os


class ColorFormatter(logging.Formatter):
    """Color-coded formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        if record.levelname in self.COLORS:
            # Other handlers share the record
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def setup_logging(level=None):
    """Setup console logging for the form engine.

    Level comes from the argument, else LOG_LEVEL, else INFO. Colors are used
    only when stdout is a TTY and LOG_COLORS is not switched off.
    """
    log_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    color_formatter = ColorFormatter(
        '%(asctime)s %(levelname)s %(name)-25s %(message)s'
    )
    plain_formatter = logging.Formatter(
        '%(asctime)s %(levelname)-8s %(name)-25s %(message)s'
    )

    use_colors = os.getenv('LOG_COLORS', 'true').lower() in ('true', '1', 'yes')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if use_colors and sys.stdout.isatty():
        console_handler.setFormatter(color_formatter)
    else:
        console_handler.setFormatter(plain_formatter)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()
    logger.addHandler(console_handler)

    # Reduce library noise
    logging.getLogger('PIL').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    logger.info(f"Form engine logging initialized (level: {log_level_str})")

    return logger
