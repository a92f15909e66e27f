"""
Test configuration and fixtures for the Casebook project.

This file is the root pytest configuration file that sets up pytest markers and
imports fixtures from the fixtures modules to make them available to all tests.
"""

import pytest
from typer.testing import CliRunner

from tests.fixtures.base import (
    base_test_env,
    mock_env_vars,
    populated_store,
    reset_casebook_logger,
    sample_test_cases,
    store,
    workspace,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line("markers", "integration: mark a test as an integration test")
    config.addinivalue_line("markers", "cli: mark a test that tests CLI functionality")


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()
