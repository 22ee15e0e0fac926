from __future__ import annotations

import logging
import uuid
from pathlib import Path

from qualibot_action.infra.ports.runner import RunnerPort

logger = logging.getLogger(__name__)


class ActionsRunner(RunnerPort):
    """Writes step outputs and the run summary to the runner's command files."""

    def __init__(self, *, output_path: Path | None = None, summary_path: Path | None = None):
        self.output_path = output_path
        self.summary_path = summary_path

    def set_output(self, name: str, value: str) -> None:
        if self.output_path is None:
            logger.info("Output %s=%s", name, value)
            return
        with open(self.output_path, "a", encoding="utf-8") as f:
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                f.write(f"{name}={value}\n")

    def write_summary(self, markdown: str) -> None:
        if self.summary_path is None:
            logger.debug("GITHUB_STEP_SUMMARY not set; skipping run summary")
            return
        with open(self.summary_path, "a", encoding="utf-8") as f:
            f.write(markdown)
            if not markdown.endswith("\n"):
                f.write("\n")
