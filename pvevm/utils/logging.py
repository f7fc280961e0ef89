"""
Logging setup for pvevm.

Every record is printed to stdout prefixed with a severity token, which the
cluster resource manager captures, and mirrored to the cluster log through an
external logger command. The mirror is best-effort: a missing or failing
logger command never affects the action outcome.
"""
from __future__ import annotations

import logging
import subprocess
import sys
from typing import List, Optional

from rich.console import Console

_HANDLER_ATTR = "_pvevm_handler"

# severity token and syslog priority per logging level
_SEVERITIES = (
    (logging.ERROR, "error", 3),
    (logging.WARNING, "note", 5),
    (logging.INFO, "info", 6),
    (logging.DEBUG, "debug", 7),
)


def severity_token(levelno: int) -> str:
    for threshold, token, _ in _SEVERITIES:
        if levelno >= threshold:
            return token
    return "debug"


def syslog_priority(levelno: int) -> int:
    for threshold, _, priority in _SEVERITIES:
        if levelno >= threshold:
            return priority
    return 7


class SeverityFormatter(logging.Formatter):
    """Formats records as '[<token>] <message>'."""

    def format(self, record: logging.LogRecord) -> str:
        record.severity = severity_token(record.levelno)
        return super().format(record)


class ConsoleHandler(logging.Handler):
    """Writes formatted records to stdout through a rich console."""

    def __init__(self, console: Optional[Console] = None, level: int = logging.NOTSET):
        super().__init__(level)
        self.console = console or Console(file=sys.stdout, highlight=False, soft_wrap=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = "red" if record.levelno >= logging.ERROR else None
            self.console.print(message, markup=False, highlight=False, style=style)
        except Exception:
            self.handleError(record)


class ClusterLogHandler(logging.Handler):
    """
    Mirrors records to the cluster log by running `<command> -s <priority> <message>`.
    """

    def __init__(self, command: str = "clulog", timeout: float = 2.0, level: int = logging.NOTSET):
        super().__init__(level)
        self.command = command
        self.timeout = timeout

    def build_argv(self, record: logging.LogRecord) -> List[str]:
        return [self.command, "-s", str(syslog_priority(record.levelno)), self.format(record)]

    def emit(self, record: logging.LogRecord) -> None:
        try:
            argv = self.build_argv(record)
            subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError, ValueError):
            # The cluster log is a mirror; losing a line is acceptable.
            pass


def _get_level(name: str) -> int:
    return getattr(logging, (name or "INFO").upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    log_command: Optional[str] = "clulog",
    *,
    logger: Optional[logging.Logger] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure the package logger for one agent invocation.

    Handlers installed by a previous call are replaced, so calling this twice
    does not duplicate output.
    """
    target_logger = logger or logging.getLogger("pvevm")
    for handler in list(target_logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            target_logger.removeHandler(handler)

    target_logger.setLevel(_get_level(level))
    target_logger.propagate = False

    formatter = SeverityFormatter("[%(severity)s] %(message)s")

    stdout_handler = ConsoleHandler(console=console)
    stdout_handler.setFormatter(formatter)
    setattr(stdout_handler, _HANDLER_ATTR, True)
    target_logger.addHandler(stdout_handler)

    if log_command:
        # Debug lines stay on stdout only.
        cluster_handler = ClusterLogHandler(log_command, level=logging.INFO)
        cluster_handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(cluster_handler, _HANDLER_ATTR, True)
        target_logger.addHandler(cluster_handler)

    return target_logger
