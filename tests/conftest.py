from pathlib import Path

import pytest


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path) or "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests(monkeypatch):
    """Keep every test independent of the host environment and of shared singletons."""
    for name in ("ORDER_MONITOR_TRANSPORT", "ORDER_MONITOR_REPLAY_PATH", "ORDER_MONITOR_URL"):
        monkeypatch.delenv(name, raising=False)

    yield

    from ordermonitor.connection import reset_transport

    reset_transport()
