"""Test suite for HN-Sort-Validator.

Hermetic pytest tests mirroring the src/ package layout. No browser is
launched: pipeline tests use the StubPage PageQuery from conftest, and
Playwright objects are replaced with mocks where BrowserManager is tested.
"""
