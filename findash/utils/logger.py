"""
Logging configuration for findash

Every module logger is a child of the "findash" logger, which owns the
handlers. Context passed through `extra` (symbol, cache key, duration) is
rendered as key=value pairs after the message.
"""

import functools
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER = "findash"

LOG_COLORS = {
    'DEBUG': Fore.CYAN,
    'INFO': Fore.GREEN,
    'WARNING': Fore.YELLOW,
    'ERROR': Fore.RED,
    'CRITICAL': Fore.MAGENTA
}

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime', 'timestamp'}

def context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}

class ContextFormatter(logging.Formatter):
    """Plain formatter that appends `extra` fields as key=value"""

    def format(self, record):
        record.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        line = super().format(record)
        fields = context_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in sorted(fields.items()))
        return line

class ColoredFormatter(ContextFormatter):
    """Console formatter, coloured when attached to a terminal"""

    def __init__(self, fmt=None, datefmt=None, use_colors=True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record):
        if not self.use_colors or record.levelname not in LOG_COLORS:
            return super().format(record)

        levelname, name = record.levelname, record.name
        record.levelname = f"{LOG_COLORS[levelname]}{levelname}{Style.RESET_ALL}"
        record.name = f"{Fore.BLUE}{name}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            # File handlers format the same record afterwards
            record.levelname = levelname
            record.name = name

class StructuredLogger:
    """Logger wrapper that merges persistent context into every record"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.context: Dict[str, Any] = {}

    def add_context(self, **kwargs):
        self.context.update(kwargs)

    def clear_context(self):
        self.context = {}

    def _log(self, level, msg, *args, **kwargs):
        extra = dict(self.context)
        extra.update(kwargs.get('extra', {}))
        kwargs['extra'] = extra
        getattr(self.logger, level)(msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self._log('debug', msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self._log('info', msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self._log('warning', msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self._log('error', msg, *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self._log('critical', msg, *args, **kwargs)

def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    (Re)configure the findash root logger

    Args:
        level: Log level name, defaults to LOG_LEVEL
        log_file: Extra plain-text destination; defaults to
            <logs_dir>/findash.log when LOG_TO_FILE is set
        use_colors: Colour console output when stderr is a terminal

    Returns:
        The configured root logger
    """
    from ..config.settings import get_config
    system = get_config().system

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, (level or system.log_level).upper()))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter("%(timestamp)s [%(levelname)s] %(name)s: %(message)s",
                                                  use_colors=use_colors))
    root.addHandler(console_handler)

    if log_file is None and system.log_to_file:
        log_file = system.logs_dir / "findash.log"
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(ContextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(file_handler)

    root.propagate = False
    return root

def get_logger(name: str) -> StructuredLogger:
    """
    Logger for a module, usually called with __name__

    The root logger is configured on first use.
    """
    if not logging.getLogger(ROOT_LOGGER).handlers:
        setup_logger()

    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return StructuredLogger(logging.getLogger(name))

def log_async_performance(logger: Optional[StructuredLogger] = None):
    """Log duration of a coroutine; the symbol argument is added when present"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            nonlocal logger
            if logger is None:
                logger = get_logger(func.__module__)

            extra = {}
            symbol = kwargs.get('symbol', args[1] if len(args) > 1 else None)
            if isinstance(symbol, str):
                extra['symbol'] = symbol

            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                extra['duration_ms'] = int((time.perf_counter() - start_time) * 1000)
                logger.error(f"Failed {func.__qualname__}: {e}", extra=extra)
                raise

            extra['duration_ms'] = int((time.perf_counter() - start_time) * 1000)
            logger.info(f"Completed {func.__qualname__}", extra=extra)
            return result

        return wrapper
    return decorator
