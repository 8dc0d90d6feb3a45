"""
pytest configuration shared by every app.

Auto-markers by filename and per-test channel layer and registry fixtures.
Environment defaults live in the repository-root conftest.py; app-specific
fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_consumers.py → e2e (full socket conversations)
    - test_services.py, test_registry.py, etc. → integration
    - test_models.py, test_serializers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_consumers.py"]

    integration_patterns = [
        "test_services.py",
        "test_registry.py",
        "test_rooms.py",
        "test_signals.py",
        "test_views.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_managers.py",
        "test_constants.py",
        "test_protocols.py",
        "test_settings.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filepath = str(item.fspath)
        filename = filepath.split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    """
    Give every test a fresh in-memory channel layer.

    Changing CHANNEL_LAYERS makes Channels drop its cached layer, so groups
    and queued messages never leak between tests (or event loops).
    """
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }


@pytest.fixture(autouse=True)
def session_registry():
    """The process-wide SessionRegistry, emptied after each test."""
    from django.apps import apps

    registry = apps.get_app_config("chat").session_registry
    yield registry
    registry.clear()
