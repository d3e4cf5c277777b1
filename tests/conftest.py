"""Pytest configuration for tormenta-init tests."""

import os

import pytest

from tests.helpers.config_generator import ConfigGenerator


@pytest.fixture
def config_generator(tmp_path):
    """ConfigGenerator writing into a per-test temporary directory."""
    return ConfigGenerator(tmp_path)


@pytest.fixture
def preserve_environment(monkeypatch):
    """Restore PATH and CONSOLE after tests that seed the real environment."""
    monkeypatch.setenv("PATH", os.environ.get("PATH", ""))
    if "CONSOLE" in os.environ:
        monkeypatch.setenv("CONSOLE", os.environ["CONSOLE"])
    else:
        # setenv then delenv registers the variable for removal at teardown
        monkeypatch.setenv("CONSOLE", "")
        monkeypatch.delenv("CONSOLE")
    return monkeypatch
