from __future__ import annotations

from abc import ABC, abstractmethod


class RunnerPort(ABC):
    @abstractmethod
    def set_output(self, name: str, value: str) -> None:
        """Expose a value to later workflow steps."""

    @abstractmethod
    def write_summary(self, markdown: str) -> None:
        """Append markdown to the run summary panel."""
