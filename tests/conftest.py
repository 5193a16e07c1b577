"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (so ``follower_enricher``, ``scripts`` and ``tests.helpers`` import from a checkout)
- Pytest markers for test categorization (unit, integration)
- A recording sleep so the fetch engine never waits on real time
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest


# ==============================================================================
# Path Setup - Ensures the package and scripts are importable
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from follower_enricher.config import PipelineSettings  # noqa: E402


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O (mocked dependencies)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests hitting the file system",
    )


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def recorded_sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    """Sleep replacement that records durations instead of waiting."""
    return recorded_sleeps.append


@pytest.fixture
def settings(tmp_path) -> PipelineSettings:
    """Small, fast settings writing under the test's tmp dir."""
    return PipelineSettings(
        output_dir=tmp_path / "out",
        checkpoint_every=2,
        request_delay=1.0,
        delay_increment=0.5,
        rate_limit_cooldown=180.0,
        backoff_ceiling=8.0,
    )
