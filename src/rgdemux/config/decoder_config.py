# decoder_config.py
from __future__ import annotations

import ast
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..constants import (
    DEFAULT_MAX_MISMATCHES,
    DEFAULT_MAX_N,
    DEFAULT_MIN_DIFFERENCE_WITH_SECOND,
    SAM_PLATFORMS,
    UNKNOWN_LABEL,
)
from ..barcodes.dictionary import ReadGroup
from ..errors import ConfigurationError
from ..optional_imports import require


# -------------------------
# Utility parsing functions
# -------------------------
def _parse_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    s = str(v).strip().lower()
    if s in ("1", "true", "t", "yes", "y", "on"):
        return True
    if s in ("0", "false", "f", "no", "n", "off", ""):
        return False
    raise ConfigurationError(f"Cannot parse boolean from '{v}'")


def _parse_int_list(v: Any) -> List[int]:
    if v is None:
        return []
    if isinstance(v, int) and not isinstance(v, bool):
        return [v]
    if isinstance(v, (list, tuple)):
        items = list(v)
    else:
        s = str(v).strip()
        if s == "" or s.lower() == "none":
            return []
        try:
            parsed = json.loads(s)
        except ValueError:
            try:
                parsed = ast.literal_eval(s)
            except (ValueError, SyntaxError):
                parsed = [p.strip() for p in s.strip("[]() ").split(",") if p.strip() != ""]
        items = list(parsed) if isinstance(parsed, (list, tuple)) else [parsed]
    try:
        return [int(x) for x in items]
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected a list of integers, got '{v}'") from None


def _parse_optional_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    s = str(v).strip()
    if s == "" or s.lower() == "none":
        return None
    try:
        return int(s)
    except ValueError:
        raise ConfigurationError(f"Expected an integer, got '{v}'") from None


def _load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    yaml = require("yaml", purpose="YAML decoder configuration")
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {p} must contain a mapping at the top level.")
    return data


def _check_unknown_keys(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} keys: {sorted(unknown)}. Known keys: {sorted(known)}"
        )


# -------------------------
# Decoder thresholds
# -------------------------
@dataclass
class DecoderConfig:
    """
    Thresholds for matching raw barcodes.

    ``max_mismatches`` and ``min_difference_with_second`` may hold a single
    value (used for every index) or one value per index.
    """

    max_n: Optional[int] = DEFAULT_MAX_N
    n_as_mismatch: bool = True
    max_mismatches: List[int] = field(default_factory=lambda: [DEFAULT_MAX_MISMATCHES])
    min_difference_with_second: List[int] = field(
        default_factory=lambda: [DEFAULT_MIN_DIFFERENCE_WITH_SECOND]
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecoderConfig":
        _check_unknown_keys(cls, data)
        cfg = cls()
        if "max_n" in data:
            cfg.max_n = _parse_optional_int(data["max_n"])
        if "n_as_mismatch" in data:
            cfg.n_as_mismatch = _parse_bool(data["n_as_mismatch"])
        if "max_mismatches" in data:
            cfg.max_mismatches = _parse_int_list(data["max_mismatches"])
        if "min_difference_with_second" in data:
            cfg.min_difference_with_second = _parse_int_list(data["min_difference_with_second"])
        cfg.validate()
        return cfg

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "DecoderConfig":
        """Load from a YAML file; a ``decoder:`` section is used when present."""
        data = _load_yaml(path)
        return cls.from_dict(data.get("decoder", data))

    def validate(self, raise_on_error: bool = True) -> List[str]:
        """
        Check value ranges. Returns a list of error messages (empty if none).
        Raises ConfigurationError if raise_on_error is True and there are errors.
        """
        errors = []
        if self.max_n is not None and self.max_n < 0:
            errors.append(f"max_n must be >= 0 (got {self.max_n})")
        if not self.max_mismatches:
            errors.append("max_mismatches needs at least one value")
        if any(v < 0 for v in self.max_mismatches):
            errors.append(f"max_mismatches must be >= 0 (got {self.max_mismatches})")
        if not self.min_difference_with_second:
            errors.append("min_difference_with_second needs at least one value")
        if any(v < 0 for v in self.min_difference_with_second):
            errors.append(
                f"min_difference_with_second must be >= 0 (got {self.min_difference_with_second})"
            )
        if raise_on_error and errors:
            raise ConfigurationError("DecoderConfig validation failed:\n  " + "\n  ".join(errors))
        return errors

    def resolve_thresholds(self, index_count: int) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """Per-index ``(max_mismatches, min_difference_with_second)`` for ``index_count`` indexes."""
        self.validate()
        return (
            _broadcast("max_mismatches", self.max_mismatches, index_count),
            _broadcast("min_difference_with_second", self.min_difference_with_second, index_count),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _broadcast(name: str, values: List[int], index_count: int) -> Tuple[int, ...]:
    if len(values) == 1:
        return tuple(values) * index_count
    if len(values) != index_count:
        raise ConfigurationError(
            f"{name} has {len(values)} values: provide one value, or one per index "
            f"({index_count})."
        )
    return tuple(values)


# -------------------------
# Read group information
# -------------------------
@dataclass
class ReadGroupConfig:
    """Run-level information shared by every read group of a dictionary."""

    run_id: Optional[str] = None
    platform: Optional[str] = None
    platform_unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadGroupConfig":
        _check_unknown_keys(cls, data)
        cfg = cls(**{k: (None if v is None else str(v)) for k, v in data.items()})
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.platform is not None and self.platform.upper() not in SAM_PLATFORMS:
            raise ConfigurationError(
                f"Platform could be only one of the following: {', '.join(sorted(SAM_PLATFORMS))} "
                f"(got '{self.platform}')"
            )

    def read_group_id(self, label: str) -> str:
        return label if self.run_id is None else f"{self.run_id}_{label}"

    @property
    def normalized_platform(self) -> Optional[str]:
        return None if self.platform is None else self.platform.upper()

    def sample_read_group(
        self, sample: str, combined_barcode: str, library: Optional[str] = None
    ) -> ReadGroup:
        """Read group of a dictionary sample; the library defaults to the sample label."""
        label = f"{sample}_{combined_barcode}"
        return ReadGroup(
            id=self.read_group_id(label),
            sample=sample,
            library=library if library is not None else label,
            platform=self.normalized_platform,
            platform_unit=self.platform_unit,
        )

    def unknown_read_group(self) -> ReadGroup:
        """Read group for unassigned reads, sharing the run platform information."""
        return ReadGroup(
            id=UNKNOWN_LABEL,
            sample=UNKNOWN_LABEL,
            platform=self.normalized_platform,
            platform_unit=self.platform_unit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
