"""Logging helpers for the decision core."""

import logging
from typing import Optional

from interfaces import ILogger


class EngineLogger(ILogger):
    def __init__(self, log_access_file: Optional[str] = None, log_error_file: Optional[str] = None, quiet: bool = False):
        self.quiet = quiet
        self.logger = logging.getLogger("focusgate")
        self.error_counter_callback = None
        self._setup_logging(log_access_file, log_error_file)

    def _setup_logging(self, log_access_file, log_error_file):
        if log_error_file:
            error_handler = logging.FileHandler(log_error_file, encoding="utf-8")
            error_handler.setFormatter(logging.Formatter("[%(asctime)s][%(levelname)s]: %(message)s", "%Y-%m-%d %H:%M:%S"))
            error_handler.setLevel(logging.ERROR)
            error_handler.addFilter(lambda r: r.levelno == logging.ERROR)
        else:
            error_handler = logging.NullHandler()

        if log_access_file:
            access_handler = logging.FileHandler(log_access_file, encoding="utf-8")
            access_handler.setFormatter(logging.Formatter("[%(asctime)s] %(message)s", "%Y-%m-%d %H:%M:%S"))
            access_handler.setLevel(logging.INFO)
            access_handler.addFilter(lambda r: r.levelno == logging.INFO)
        else:
            access_handler = logging.NullHandler()

        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers = []
        self.logger.setLevel(logging.INFO)
        self.logger.addHandler(error_handler)
        self.logger.addHandler(access_handler)

    def set_error_counter_callback(self, callback):
        self.error_counter_callback = callback

    def log_access(self, message: str) -> None:
        self.logger.info(message)

    def log_error(self, message: str) -> None:
        if self.error_counter_callback:
            self.error_counter_callback()
        self.logger.error(message)

    def info(self, *a, **k) -> None:
        if not self.quiet:
            print(*a, **k)

    def error(self, *a, **k) -> None:
        if not self.quiet:
            print(*a, **k)


class NullLogger(ILogger):
    def log_access(self, message: str) -> None:
        pass

    def log_error(self, message: str) -> None:
        pass

    def info(self, *a, **k) -> None:
        pass

    def error(self, *a, **k) -> None:
        pass
