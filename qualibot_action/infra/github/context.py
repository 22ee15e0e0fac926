"""Pull request context from the runner's event payload."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from qualibot_action.domain.models import ChangeMetadata

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _pr_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip()) or None
    return None


def change_from_pull_request(pr: dict[str, Any]) -> ChangeMetadata | None:
    number = _pr_number(pr.get("number"))
    if number is None:
        logger.warning("Pull request number %r is not a positive integer.", pr.get("number"))
        return None
    user = _as_dict(pr.get("user"))
    head = _as_dict(pr.get("head"))
    base = _as_dict(pr.get("base"))
    return ChangeMetadata(
        number=number,
        title=_text(pr.get("title")),
        url=_text(pr.get("html_url")),
        author=_text(user.get("login")),
        author_avatar=_text(user.get("avatar_url")) or None,
        head_branch=_text(head.get("ref")),
        base_branch=_text(base.get("ref")),
        head_sha=_text(head.get("sha")),
    )


def load_change_metadata(event_path: Path | None) -> ChangeMetadata | None:
    """Return the pull request the run was triggered for, or None outside a PR."""
    if event_path is None or not event_path.exists():
        logger.debug("No event payload at %s", event_path)
        return None

    with open(event_path, encoding="utf-8") as f:
        event = json.load(f)

    pr = event.get("pull_request") if isinstance(event, dict) else None
    if not isinstance(pr, dict) or pr.get("number") is None:
        return None
    return change_from_pull_request(pr)
