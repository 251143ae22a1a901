from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog
from structlog.contextvars import clear_contextvars

from watchmux.config import get_settings


@pytest.fixture(autouse=True)
def _reset_logging_and_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in ("WATCHMUX_CHANNEL_CAPACITY", "WATCHMUX_SHELL", "WATCHMUX_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()
    clear_contextvars()
