import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import


@pytest.fixture
def hashcoll_caplog(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> Iterator[pytest.LogCaptureFixture]:
    """caplog that also sees the ``hashcoll`` logger (which does not propagate)."""

    hashcoll_logger = logging.getLogger("hashcoll")
    monkeypatch.setattr(hashcoll_logger, "propagate", True)
    with caplog.at_level(logging.DEBUG, logger="hashcoll"):
        yield caplog


@pytest.fixture(autouse=True)
def _reset_cli_state() -> Iterator[None]:
    """Restore module-level CLI state that ``main`` mutates."""

    from hashcoll.cli import app
    from hashcoll.config import AppConfig

    handlers = list(app.logger.handlers)
    yield
    app.OUTPUT_JSON = False
    app.set_app_config(AppConfig())
    app.logger.handlers = handlers
    app.logger.setLevel(logging.INFO)
