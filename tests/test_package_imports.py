"""
Package Import Tests - Verify all exports are working correctly.

This test module ensures:
1. All __all__ exports are importable
2. No circular import issues
3. Version is correct
"""

import importlib

import pytest


class TestPackageImports:
    """Test all package imports work correctly."""

    def test_version(self):
        """Version should be a valid semver string."""
        import paper_search

        parts = paper_search.__version__.split(".")
        assert len(parts) >= 2
        assert all(p.isdigit() for p in parts[:2])

    @pytest.mark.parametrize(
        "module",
        [
            "paper_search",
            "paper_search.api",
            "paper_search.application",
            "paper_search.application.search",
            "paper_search.infrastructure.embedding",
            "paper_search.infrastructure.index",
            "paper_search.infrastructure.sources",
            "paper_search.presentation.mcp_server",
            "paper_search.presentation.mcp_server.tools",
        ],
    )
    def test_all_exports_importable(self, module):
        """All items in __all__ should be importable."""
        imported = importlib.import_module(module)
        for name in imported.__all__:
            assert getattr(imported, name, None) is not None, f"{module}.{name} is missing"
