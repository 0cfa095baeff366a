"""Shared fixtures: isolated configuration for every test."""
import pytest

from defermistake.analyzer.analysis import DeferMistakeAnalyzer
from defermistake.config import reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path):
    """Run each test without DEFERMISTAKE_* variables or a stray .env file."""
    for name in ('DEFERMISTAKE_FLAGGED', 'DEFERMISTAKE_CACHE_DIR', 'DEFERMISTAKE_NO_CACHE'):
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def analyzer():
    """Analyzer with the default registry (time.Since)."""
    return DeferMistakeAnalyzer()
