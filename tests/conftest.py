"""Shared fixtures for mdexpand tests."""

import tempfile
from pathlib import Path

import pytest

from mdexpand.imports import ImportContext
from mdexpand.settings import ExpansionSettings


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolve so macOS /private/var aliases compare equal
        yield Path(tmpdir).resolve()


@pytest.fixture
def settings():
    return ExpansionSettings(command_timeout=5.0)


@pytest.fixture
def ctx(settings):
    """Context with an import tracker attached."""
    return ImportContext(resolved_imports=[], settings=settings)
