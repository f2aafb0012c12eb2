# tasq/core/logging.py
import logging
import os
import sys
from datetime import datetime


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get('TASQ_LOG_LEVEL', 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


# Level applied to loggers created after this point, can be changed by set_default_level()
_default_level: int = _level_from_env()


class ColoredFormatter(logging.Formatter):
    """Column-aligned, colored formatter: ``[time] [component] [LEVEL] message``."""

    RESET = '\033[0m'
    TIME_COLOR = '\033[94m'
    TEXT_COLOR = '\033[97m'

    LEVEL_COLORS = {
        'DEBUG': '\033[90m',
        'INFO': '\033[92m',
        'WARNING': '\033[93m',
        'ERROR': '\033[91m',
        'CRITICAL': '\033[1;91m',
    }

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        # 'tasq.broker' -> 'broker'
        component = record.name.rsplit('.', 1)[-1]
        component_col = f'[{component}]'.ljust(10)
        level_col = f'[{record.levelname}]'.ljust(10)
        level_color = self.LEVEL_COLORS.get(record.levelname, self.TEXT_COLOR)

        formatted = (
            f'{self.TIME_COLOR}[{time_str}]{self.RESET} '
            f'{self.TEXT_COLOR}{component_col}{self.RESET}'
            f'{level_color}{level_col}{self.RESET}'
            f'{self.TEXT_COLOR}{record.getMessage()}{self.RESET}'
        )
        if record.exc_info:
            formatted += '\n' + self.formatException(record.exc_info)
        return formatted


def set_default_level(level: int) -> None:
    """Set the default log level for new loggers."""
    global _default_level
    _default_level = level


def get_logger(component_name: str) -> logging.Logger:
    """Get the ``tasq.<component_name>`` logger, configuring it on first use."""
    logger = logging.getLogger(f'tasq.{component_name}')

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ColoredFormatter())
        handler.setLevel(_default_level)
        logger.addHandler(handler)
        logger.setLevel(_default_level)
        logger.propagate = False

    return logger
