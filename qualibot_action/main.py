from __future__ import annotations

import logging
import sys

from qualibot_action.core.config import get_settings
from qualibot_action.core.errors import QualiBotError
from qualibot_action.core.logging import configure_logging, escape_command_data
from qualibot_action.dependencies import get_run_service
from qualibot_action.infra.github.context import load_change_metadata

logger = logging.getLogger(__name__)


def _set_failed(message: str) -> None:
    print(f"::error::{escape_command_data(message)}", file=sys.stdout, flush=True)


def main() -> int:
    configure_logging(logging.INFO)
    try:
        settings = get_settings()
        configure_logging(settings.log_level)
        change = load_change_metadata(settings.github_event_path)
        outcome = get_run_service().run(change)
    except QualiBotError as exc:
        _set_failed(str(exc))
        return 1
    except Exception as exc:
        logger.debug("Unexpected failure", exc_info=True)
        _set_failed(str(exc) or "An unexpected error occurred")
        return 1

    if outcome.failure_message:
        _set_failed(outcome.failure_message)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
