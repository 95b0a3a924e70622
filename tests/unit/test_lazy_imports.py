"""Tests for lazy import system in nostrchat.__init__."""

from __future__ import annotations

import importlib
import sys
from collections.abc import Iterator

import pytest


@pytest.fixture
def fresh_modules() -> Iterator[None]:
    """Drop cached nostrchat modules, then put the originals back.

    Restoring matters: re-imported modules would register their Prometheus
    metrics twice and create second copies of every class.
    """
    saved = {name: mod for name, mod in sys.modules.items() if name.startswith("nostrchat")}
    for name in saved:
        del sys.modules[name]
    yield
    for name in [name for name in sys.modules if name.startswith("nostrchat")]:
        del sys.modules[name]
    sys.modules.update(saved)


class TestLazyImports:
    """Test PEP 562 lazy loading in nostrchat.__init__."""

    def test_lazy_import_does_not_eagerly_load(self, fresh_modules: None) -> None:
        """Verify that importing nostrchat does not eagerly load subpackages."""
        importlib.import_module("nostrchat")

        assert "nostrchat.core" not in sys.modules
        assert "nostrchat.models" not in sys.modules
        assert "nostrchat.services" not in sys.modules
        assert "nostrchat.nips" not in sys.modules

    def test_lazy_import_resolves_on_access(self) -> None:
        """Verify that lazy attributes resolve correctly."""
        from nostrchat import Relay, SessionOrchestrator
        from nostrchat.models.relay import Relay as DirectRelay
        from nostrchat.services.orchestrator import SessionOrchestrator as DirectOrchestrator

        assert Relay is DirectRelay
        assert SessionOrchestrator is DirectOrchestrator

    def test_lazy_import_caches_after_first_access(self) -> None:
        """Verify that resolved attributes are cached in globals."""
        import nostrchat

        _ = nostrchat.Identity

        assert "Identity" in vars(nostrchat)

    def test_lazy_import_invalid_attribute(self) -> None:
        """Verify that invalid attributes raise AttributeError."""
        import nostrchat

        with pytest.raises(AttributeError, match="no_such_thing"):
            _ = getattr(nostrchat, "no_such_thing")  # noqa: B009

    def test_all_exports_are_in_lazy_imports(self) -> None:
        """Verify that __all__ and _LAZY_IMPORTS are in sync."""
        import nostrchat

        assert set(nostrchat.__all__) == set(nostrchat._LAZY_IMPORTS)

    def test_dir_returns_all(self) -> None:
        import nostrchat

        assert dir(nostrchat) == nostrchat.__all__

    def test_version_is_accessible(self) -> None:
        """Verify that __version__ is set from package metadata."""
        import nostrchat

        assert isinstance(nostrchat.__version__, str)
        assert nostrchat.__version__
