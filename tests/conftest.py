"""
Pytest configuration for blunderbuss tests

This module provides shared configuration for all tests.
"""


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "tui: mark test as driving the Textual app with Pilot"
    )
