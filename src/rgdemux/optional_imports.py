"""Optional dependencies and the extras that install them."""

from __future__ import annotations

from importlib import import_module
from types import MappingProxyType
from typing import Any, Mapping, Optional

# top-level module -> extra declared in pyproject.toml
OPTIONAL_EXTRAS: Mapping[str, str] = MappingProxyType({"pysam": "bam", "yaml": "yaml"})


def extra_for(package: str) -> str:
    return OPTIONAL_EXTRAS.get(package.split(".")[0], "all")


def require(package: str, *, extra: Optional[str] = None, purpose: Optional[str] = None) -> Any:
    """Import an optional dependency, or fail with the ``pip install`` line that provides it.

    Args:
        package: Importable module name (e.g., "pysam", "yaml").
        extra: Extra to suggest; looked up in ``OPTIONAL_EXTRAS`` when omitted.
        purpose: Feature needing the dependency, quoted in the error.

    Raises:
        ModuleNotFoundError: If the package itself is not installed. Missing
            modules imported *by* the package propagate unchanged.
    """
    try:
        return import_module(package)
    except ModuleNotFoundError as exc:
        if exc.name not in (package, package.split(".")[0]):
            raise
        reason = f" for {purpose}" if purpose else ""
        raise ModuleNotFoundError(
            f"Optional dependency '{package}' is required{reason}. "
            f"Install it with: pip install 'rgdemux[{extra or extra_for(package)}]'",
            name=exc.name,
        ) from exc
