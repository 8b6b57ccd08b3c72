from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import pytest

from spreadsheet_engine.config import Settings
from spreadsheet_engine.engine import SheetEngine
from spreadsheet_engine.utils.logging import PACKAGE_LOGGER, clear_context


def fake_measurer(text: str) -> float:
    """Deterministic width: 10 px per character."""
    return 10.0 * len(text)


@pytest.fixture(autouse=True)
def _reset_log_context() -> None:
    clear_context()


@pytest.fixture(autouse=True)
def _restore_package_log_level() -> Iterator[None]:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def engine_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Three people with a name, age and city column."""
    return {
        "values": {
            "columns": [
                {"name": "Name", "key": "name"},
                {"name": "Age", "key": "age"},
                {"name": "City", "key": "city"},
            ],
            "items": [
                {"name": "Carol", "age": 50, "city": "Oslo"},
                {"name": "alice", "age": 0, "city": "Lima"},
                {"name": "Bob", "age": 10, "city": "Rome"},
            ],
        }
    }


@pytest.fixture
def engine(engine_settings: Settings) -> SheetEngine:
    """Empty engine with deterministic text measurement."""
    return SheetEngine(config=engine_settings, sheet_id="test", measurer=fake_measurer)


@pytest.fixture
def loaded_engine(
    engine_settings: Settings, sample_payload: dict[str, Any]
) -> SheetEngine:
    return SheetEngine(
        sample_payload,
        config=engine_settings,
        sheet_id="test",
        measurer=fake_measurer,
    )
