from __future__ import annotations

from abc import ABC, abstractmethod


class CommentPort(ABC):
    @abstractmethod
    def post_comment(self, *, issue_number: int, body: str) -> None:
        """Append a comment to the pull request thread."""
