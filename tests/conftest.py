from __future__ import annotations

from pathlib import Path

import pytest

_DIRECTORY_MARKERS = {
    "/tests/unit/": pytest.mark.unit,
    "/tests/smoke/": pytest.mark.smoke,
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark tests by the suite directory they live in."""
    for item in items:
        path = f"/{Path(str(item.fspath)).as_posix()}"
        for directory, marker in _DIRECTORY_MARKERS.items():
            if directory in path:
                item.add_marker(marker)
