"""Configuration for the resource mock."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

# Bytes in one mebibyte; every size is tracked internally in MiB.
MIB = 1024 * 1024

_UNIT_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "K": 1024,
    "M": MIB,
    "G": 1024 * MIB,
    "T": 1024 * 1024 * MIB,
}

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([A-Z]?)$")

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_DURATION_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class ConfigurationError(ValueError):
    """Raised when a configuration value is out of range or malformed."""


def parse_file_size(size: str) -> int:
    """Parse a file size with an optional unit suffix into whole MiB.

    Format: ``<number>[B|K|M|G|T]`` (case-insensitive). A bare number is a
    byte count. The result is truncated toward zero, so ``"500K"`` is 0 MiB.

    Args:
        size: Size string such as ``"100M"`` or ``"1.5G"``.

    Returns:
        Size in MiB.

    Raises:
        ConfigurationError: If the number or unit is invalid.
    """
    if not size or not size.strip():
        return 0

    match = _SIZE_RE.match(size.strip().upper())
    if match is None:
        raise ConfigurationError(
            f"Invalid file size {size!r}: expected number + unit, e.g. 100M, 1.5G"
        )

    number, unit = match.groups()
    unit = unit or "B"
    multiplier = _UNIT_MULTIPLIERS.get(unit)
    if multiplier is None:
        raise ConfigurationError(
            f"Unsupported unit {unit!r} in {size!r} (supported: B, K, M, G, T)"
        )

    total_bytes = int(float(number) * multiplier)
    return total_bytes // MIB


def parse_duration(text: str) -> float:
    """Parse a duration into seconds.

    Accepts a bare number of seconds (``"90"``, ``"2.5"``) or a sequence of
    unit-suffixed parts (``"30s"``, ``"1m30s"``, ``"500ms"``, ``"1h"``).

    Raises:
        ConfigurationError: If the string cannot be parsed.
    """
    raw = text.strip().lower()
    if not raw:
        raise ConfigurationError("Empty duration")

    try:
        return float(raw)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(raw):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(raw):
        raise ConfigurationError(
            f"Invalid duration {text!r}: expected e.g. 30s, 1m30s, 500ms"
        )
    return total


@dataclass(frozen=True)
class MockConfig:
    """Validated runtime configuration for the resource mock.

    Instances are immutable and shared read-only by every actuator.
    """

    # Target aggregate CPU utilization, 0 disables the CPU actuator
    cpu_percent: float = 0.0

    # Target resident memory in MiB, 0 disables the memory actuator
    memory_mb: int = 0

    # Target file size in MiB, 0 disables the file actuator
    file_size_mb: int = 0

    # Location of the grown file
    file_path: str = "outagemock_temp_file"

    # Total run time in seconds before automatic shutdown
    duration: float = 30.0

    # Seconds to linearly reach every target (0 = immediate)
    rampup_time: float = 10.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.cpu_percent) or not (
            0.0 <= self.cpu_percent <= 100.0
        ):
            raise ConfigurationError("CPU percentage must be between 0 and 100")
        if self.memory_mb < 0:
            raise ConfigurationError("Memory size must be non-negative")
        if self.file_size_mb < 0:
            raise ConfigurationError("File size must be non-negative")
        if self.file_size_mb > 0 and not self.file_path:
            raise ConfigurationError("File path is required when file size is set")
        if not math.isfinite(self.duration) or self.duration <= 0:
            raise ConfigurationError("Duration must be positive")
        if not math.isfinite(self.rampup_time) or self.rampup_time < 0:
            raise ConfigurationError("Rampup time must be non-negative")

    @property
    def cpu_enabled(self) -> bool:
        return self.cpu_percent > 0

    @property
    def memory_enabled(self) -> bool:
        return self.memory_mb > 0

    @property
    def file_enabled(self) -> bool:
        return self.file_size_mb > 0
