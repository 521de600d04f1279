"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
Job and match builders live in tests/mocks/factories.py.
"""
import pytest

from matching.models import UserPreferences
from tests.mocks.factories import FIXED_NOW


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def free_user():
    return UserPreferences(
        email="free@example.com",
        target_cities=["Berlin", "Paris"],
        career_path=["data"],
        entry_level_preference="entry-level",
        career_keywords="python, sql",
        subscription_tier="free",
    )


@pytest.fixture
def premium_user():
    return UserPreferences(
        email="premium@example.com",
        target_cities=["Berlin", "Paris"],
        career_path=["data", "finance"],
        entry_level_preference="entry-level",
        career_keywords="python, sql, excel",
        subscription_tier="premium",
    )
