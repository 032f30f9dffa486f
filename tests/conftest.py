"""
Pytest configuration and shared fixtures for pipeforge tests.

This module provides common test fixtures and marker configuration
used across the test suite.
"""

import pytest

from pipeforge.codegen import GenerationRules
from pipeforge.compiler import InMemoryCompileStrategy, ModuleLoader
from pipeforge.pipeline import PipelineOptions
from pipeforge.utils.config import PipeforgeConfig, set_config


@pytest.fixture(autouse=True)
def isolated_config():
    """Give every test a default configuration, unaffected by the environment."""
    set_config(PipeforgeConfig())
    yield
    set_config(None)


@pytest.fixture
def in_memory_rules():
    """Generation rules compiling in-process with a private loader."""
    return GenerationRules(compile_strategy=InMemoryCompileStrategy(), loader=ModuleLoader())


@pytest.fixture
def options(in_memory_rules):
    """Pipeline options generating into an in-memory module."""
    pipeline_options = PipelineOptions(PipeforgeConfig())
    pipeline_options.rules = in_memory_rules
    return pipeline_options


# Pytest hooks for test collection and reporting
def pytest_collection_modifyitems(config, items):
    """Add markers based on test path."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "filecheck" in str(item.fspath):
            item.add_marker(pytest.mark.filecheck)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for complete workflows"
    )
    config.addinivalue_line(
        "markers", "filecheck: FileCheck-style generated source validation tests"
    )
