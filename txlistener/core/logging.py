# txlistener/core/logging.py
"""
Logging for the transaction listener.

Everything logs below the `txlistener` logger, which `ListenerLogger`
configures once per process. Components either ask `ListenerLogger` for a
named logger or inherit `LoggingMixin`; both accept keyword context
(tx_hash, block_number, session, ...) that the context-aware formatter
appends to the line.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR

ROOT_LOGGER_NAME = 'txlistener'

CONTEXT_FIELDS: Tuple[str, ...] = (
    'tx_hash',
    'block_number',
    'contract_address',
    'contract_name',
    'session',
    'origin',
    'error',
    'exception_type',
)

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ListenerFormatter(logging.Formatter):
    """Plain format, optionally followed by ` | key=value ...` context"""

    def __init__(self, include_context: bool = False):
        super().__init__(PLAIN_FORMAT)
        self.include_context = include_context

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return f"{super().formatTime(record, '%Y-%m-%d %H:%M:%S')}.{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.include_context:
            return line

        context = [f"{key}={getattr(record, key)}" for key in CONTEXT_FIELDS if hasattr(record, key)]
        if not context:
            return line
        return f"{line} | {' '.join(context)}"


class ListenerLogger:
    """Process wide configuration of the `txlistener` logger tree"""

    _configured = False
    _log_level = logging.INFO

    @classmethod
    def configure(cls,
                  log_dir: Optional[Path] = None,
                  log_level: str = "INFO",
                  console_enabled: bool = True,
                  file_enabled: bool = False,
                  structured_format: bool = True) -> None:
        if cls._configured:
            return

        cls._log_level = getattr(logging, log_level.upper())
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(cls._log_level)
        root_logger.handlers.clear()

        if console_enabled:
            root_logger.addHandler(cls._handler(logging.StreamHandler(sys.stdout), cls._log_level,
                                                ListenerFormatter(include_context=structured_format)))

        if file_enabled and log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_formatter = ListenerFormatter(include_context=True)
            root_logger.addHandler(cls._handler(logging.FileHandler(log_dir / 'txlistener.log'),
                                                cls._log_level, file_formatter))
            root_logger.addHandler(cls._handler(logging.FileHandler(log_dir / 'txlistener_errors.log'),
                                                logging.ERROR, file_formatter))

        cls._configured = True

    @staticmethod
    def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    @classmethod
    def reset(cls) -> None:
        """Drop installed handlers so the next configure() takes effect"""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()
        if name != ROOT_LOGGER_NAME and not name.startswith(f'{ROOT_LOGGER_NAME}.'):
            name = f'{ROOT_LOGGER_NAME}.{name}'
        return logging.getLogger(name)


def get_class_logger(instance) -> logging.Logger:
    module = type(instance).__module__
    prefix = f'{ROOT_LOGGER_NAME}.'
    if module.startswith(prefix):
        module = module[len(prefix):]
    return ListenerLogger.get_logger(f"{module}.{type(instance).__name__}")


def log_with_context(logger: logging.Logger, level: int, message: str, exc_info=None, **context) -> None:
    if not logger.isEnabledFor(level):
        return
    if exc_info is True:
        exc_info = sys.exc_info()
    record = logger.makeRecord(logger.name, level, "", 0, message, (), exc_info)
    record.__dict__.update(context)
    logger.handle(record)


class LoggingMixin:
    """Gives a class a `txlistener.<module>.<Class>` logger and context-aware log helpers"""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = get_class_logger(self)
        return self._logger

    def log_debug(self, message: str, **context) -> None:
        log_with_context(self.logger, DEBUG, message, **context)

    def log_info(self, message: str, **context) -> None:
        log_with_context(self.logger, INFO, message, **context)

    def log_warning(self, message: str, **context) -> None:
        log_with_context(self.logger, WARNING, message, **context)

    def log_error(self, message: str, exc_info=None, **context) -> None:
        log_with_context(self.logger, ERROR, message, exc_info=exc_info, **context)
