"""Shared test fixtures and configuration for ccrouter tests."""

import os

import pytest

from ccrouter.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"

    # Reuse the application logging pipeline; DEBUG would flood the
    # byte-split tests, which translate the same stream thousands of times
    setup_logging(json_logs=False, log_level_name="INFO")


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    """Keep local config files and CCROUTER_* variables out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("CCROUTER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
