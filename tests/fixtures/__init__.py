"""
Fixtures package for the Casebook testing framework.

This package provides reusable fixtures and test data factories.
"""

from tests.fixtures.base import (
    base_test_env,
    make_zip,
    mock_env_vars,
    populated_store,
    read_zip,
    reset_casebook_logger,
    sample_test_cases,
    store,
    workspace,
    write_json,
)
from tests.fixtures.factories import StepFactory, TestCaseFactory
