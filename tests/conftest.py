from __future__ import annotations

from collections.abc import Iterator

import pytest

from request_logger import config


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    # Keep a developer's .env out of the settings every test sees.
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    config.reset_settings_cache()
    yield
    config.reset_settings_cache()
