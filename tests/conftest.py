"""
Pytest configuration and shared fixtures for nostrchat tests.

Provides:
- Deterministic test keys and identities
- Signed event factories
- A fake ``nostr_sdk`` client that records calls and injects relay messages
- A fake connector and a fake signing agent
- Custom pytest markers for test categorization
"""

from __future__ import annotations

import logging

import pytest

from nostrchat.models.identity import Identity
from tests.fixtures.fakes import FakeAgent, FakeConnector


# ============================================================================
# Test Keys (DO NOT USE IN PRODUCTION)
# ============================================================================

VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)
VALID_PUBLIC_KEY = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"

OTHER_HEX_KEY = (
    "b7e151628aed2a6abf7158809cf4f3c762e7160f38b4da56a784d9045190cfef"  # pragma: allowlist secret
)
OTHER_PUBLIC_KEY = "dff1d77f2a671c5f36183726db2341be58feae1da2deced843240f7b502ba659"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Identity Fixtures
# ============================================================================


@pytest.fixture
def identity() -> Identity:
    """Local identity for the primary test key."""
    return Identity(public_key=VALID_PUBLIC_KEY, private_key=VALID_HEX_KEY)


@pytest.fixture
def other_identity() -> Identity:
    """Local identity for a second participant."""
    return Identity(public_key=OTHER_PUBLIC_KEY, private_key=OTHER_HEX_KEY)


# ============================================================================
# Transport and Agent Fixtures
# ============================================================================


@pytest.fixture
def connector() -> FakeConnector:
    """Connector handing out recording fake clients."""
    return FakeConnector()


@pytest.fixture
def agent(identity: Identity) -> FakeAgent:
    """Signing agent holding the primary test key."""
    return FakeAgent(identity)


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")
    config.addinivalue_line(
        "markers", "integration: marks tests that run against a local websocket relay"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
