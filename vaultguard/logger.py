"""
VaultGuard Logging
==================

Process-wide logging for the control plane, built on the standard ``logging``
package with a ``rich`` console handler.

Log records routinely carry values that came from relayed calldata (token
names, reason strings), so every handler formats through
``TerminalSafeFormatter``, which drops escape sequences before anything
reaches a terminal or a log file.

Usage:
    >>> from vaultguard.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Wallet 0x1234…abcd locked until 1700000000")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)


LOG_FILE_PATH = Path.cwd() / "logs" / "vaultguard.log"

_SPECIFIER_RE = re.compile(r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]")

THEME = Theme(
    {
        "vaultguard.address":    "cyan",
        "vaultguard.arrow":      "bold yellow",
        "vaultguard.hash":       "dim cyan",
        "vaultguard.event":      "bold magenta",
        "vaultguard.prefix":     "bold blue",
        "vaultguard.amount":     "green",
        "vaultguard.logger":     "magenta",
        "vaultguard.timestamp":  "bold cyan",
        "vaultguard.error":      "bold red",
        "vaultguard.warning":    "bold yellow",
    }
)


class ControlPlaneHighlighter(RegexHighlighter):
    """Colors addresses, hashes, module reason prefixes and amounts."""

    base_style = "vaultguard."
    highlights = [
        r"(?P<hash>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<address>\b0x[0-9a-fA-F]{4,40}(?:…[0-9a-fA-F]{4})?)",
        r"(?P<arrow>→)",
        r"(?P<prefix>\b(?:BM|TT|LM|GM|RM|AT|TE|WF|MR|MSW|SN|TPP):)",
        r"(?P<amount>\b\d{4,}\b)",
        r"(?P<error>\bERROR\b|\bCRITICAL\b)",
        r"(?P<warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger>vaultguard[\w.]*)",
        r"(?P<timestamp>^.*?UTC)",
    ]


class TerminalSafeFormatter(logging.Formatter):
    """Formatter that strips ANSI escapes and control characters (tab and newline survive)."""

    _ansi_re = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    _control_re = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control_re.sub("", cls._ansi_re.sub("", text))

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


def checked_format(log_format: str) -> str:
    """
    The configured record format, or the default when it cannot format a record.
    """
    fallback = str(LOG_FORMAT.default())
    if not log_format:
        return fallback
    log_format = str(log_format)
    for match in _SPECIFIER_RE.finditer(log_format):
        if match.start() == 0 or log_format[match.start() - 1] != "%":
            _complain(f"Malformed specifier in LOG_FORMAT {log_format!r}")
            return fallback
    record = logging.LogRecord("vaultguard", logging.INFO, "", 0, "probe", (), None)
    try:
        logging.Formatter(fmt=log_format).format(record)
    except (ValueError, KeyError, TypeError) as e:
        _complain(f"Unusable LOG_FORMAT ({e})")
        return fallback
    return log_format


def checked_date_format(date_format: str) -> str:
    """The configured strftime format, or the default when it has no directive."""
    fallback = str(LOG_DATE_FORMAT.default())
    if not date_format or "%" not in str(date_format):
        return fallback
    try:
        time.strftime(str(date_format))
    except ValueError as e:
        _complain(f"Unusable LOG_DATE_FORMAT ({e})")
        return fallback
    return str(date_format)


def _complain(message: str) -> None:
    # logging is not available yet
    print(f"vaultguard.logger - {message}. Using default.", file=sys.stderr)


def _numeric_level(level) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class LogManager:
    """
    Singleton owning the root handlers.

    ``configure`` runs once per process; ``set_level`` may be called at any
    time, for example with the ``[logging] level`` of a loaded configuration.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._configured = False
                    instance._handlers = []
                    cls._instance = instance
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def handlers(self) -> List[logging.Handler]:
        return list(self._handlers)

    def _console_handler(self) -> logging.Handler:
        if LOG_CONSOLE_HIGHLIGHTING:
            return RichHandler(
                console=Console(theme=THEME, highlight=False),
                highlighter=ControlPlaneHighlighter(),
                rich_tracebacks=True,
                show_path=False,
                show_time=False,
                show_level=False,
                markup=False,
            )
        return logging.StreamHandler(sys.stdout)

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: Level name; defaults to the ``LOG_LEVEL`` setting
            log_file: Rotating log file; defaults to ``logs/vaultguard.log``
            console_output: Attach the console handler
            file_output: Attach the file handler; defaults to ``LOG_FILE_OUTPUT``
        """
        with self._lock:
            if self._configured:
                return

            level = _numeric_level(log_level or LOG_LEVEL)
            formatter = TerminalSafeFormatter(
                fmt=checked_format(LOG_FORMAT),
                datefmt=checked_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                handlers.append(self._console_handler())
            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                path = log_file or LOG_FILE_PATH
                path.parent.mkdir(parents=True, exist_ok=True)
                handlers.append(
                    logging.handlers.RotatingFileHandler(
                        filename=str(path),
                        maxBytes=LOG_MAX_FILE_SIZE,
                        backupCount=LOG_BACKUP_COUNT,
                        encoding="utf-8",
                    )
                )

            root = logging.getLogger()
            root.handlers.clear()
            for handler in handlers:
                handler.setFormatter(formatter)
                handler.setLevel(level)
                root.addHandler(handler)
            root.setLevel(level)

            self._handlers = handlers
            self._configured = True

    def set_level(self, level) -> int:
        """Change the level of the root logger and of every installed handler."""
        numeric = _numeric_level(level)
        logging.getLogger().setLevel(numeric)
        for handler in self._handlers:
            handler.setLevel(numeric)
        return numeric

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` (normally ``__name__``), configuring logging on first use."""
    return _manager.get_logger(name)


def set_log_level(level) -> int:
    return _manager.set_level(level)


_manager.configure()
