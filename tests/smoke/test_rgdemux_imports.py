"""Import smoke tests for rgdemux modules."""

from __future__ import annotations

import pytest

from tests.smoke.import_helpers import import_module_or_skip

MODULES = [
    "rgdemux",
    "rgdemux.barcodes",
    "rgdemux.barcodes.decoder",
    "rgdemux.barcodes.dictionary_factory",
    "rgdemux.barcodes.metrics_io",
    "rgdemux.cli_entry",
    "rgdemux.config",
    "rgdemux.constants",
    "rgdemux.informatics",
    "rgdemux.logging_utils",
    "rgdemux.optional_imports",
]


@pytest.mark.parametrize("module_name", MODULES)
def test_imports(module_name: str) -> None:
    import_module_or_skip(module_name)
