"""Pytest configuration and shared fixtures for all tests."""

import pytest


@pytest.fixture(autouse=True)
def disable_sentry_for_tests(monkeypatch):
    """Disable Sentry telemetry for all tests.

    Tests that exercise Sentry setup (test_sentry_filtering.py) patch
    TELEMETRY and SENTRY_DSN themselves.
    """
    monkeypatch.setenv("TELEMETRY", "false")
    monkeypatch.delenv("SENTRY_DSN", raising=False)
