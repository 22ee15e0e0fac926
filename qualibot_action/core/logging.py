"""Logging setup that speaks the CI runner's workflow-command syntax."""

from __future__ import annotations

import logging
import sys

_PACKAGE_LOGGER = "qualibot_action"
_HANDLER_NAME = "qualibot-workflow"


def escape_command_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandFormatter(logging.Formatter):
    """Render warnings and errors as ``::warning::`` / ``::error::`` annotations."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"::error::{escape_command_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"::warning::{escape_command_data(message)}"
        if record.levelno <= logging.DEBUG:
            return f"::debug::{escape_command_data(message)}"
        return message


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(_PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Idempotent: main() may be called more than once in one interpreter (tests).
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    logger.addHandler(handler)
    return logger
