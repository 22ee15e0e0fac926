import logging
import os
import sys
from pathlib import Path

import pytest

# Keep tests deterministic and local-only.
os.environ["QUALIBOT_SKIP_DOTENV"] = "1"

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_RUNNER_ENV = (
    "GITHUB_OUTPUT",
    "GITHUB_STEP_SUMMARY",
    "GITHUB_EVENT_PATH",
    "GITHUB_REPOSITORY",
    "GITHUB_API_URL",
    "QUALIBOT_API_URL",
    "QUALIBOT_HTTP_TIMEOUT_SECONDS",
    "QUALIBOT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for name in list(os.environ):
        if name.startswith("INPUT_"):
            monkeypatch.delenv(name, raising=False)
    for name in _RUNNER_ENV:
        monkeypatch.delenv(name, raising=False)

    from qualibot_action.dependencies import clear_caches

    clear_caches()
    yield

    # main() installs a stdout handler bound to the test's captured stream.
    package_logger = logging.getLogger("qualibot_action")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
