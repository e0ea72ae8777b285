"""Engine configuration."""

import json
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from bidline.domain.errors import ConfigurationError
from bidline.domain.models import OFF_MARKERS, HolidayFilter

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


class ScanMode(Enum):
    """How the pattern analyzer scans a schedule."""

    SCALE = "scale"  # Scan one cycle, multiply period totals by the cycle count
    FULL_SPAN = "full_span"  # Scan every day of every cycle


@dataclass
class EngineConfig:
    """Settings shared by the analyzer, batch job, and CLI.

    Attributes:
        default_jurisdiction: Holiday jurisdiction for schedules without one.
        scan_mode: Pattern analyzer scan mode.
        max_workers: Thread pool size for batch recompute.
        log_level: Root logging level name.
        off_markers: Template values that mean "day off".
        holiday_filter: Name of a holiday filter preset (e.g.,
            "workplace_standard"), or None to count every holiday.
    """

    default_jurisdiction: str = "CA"
    scan_mode: ScanMode = ScanMode.SCALE
    max_workers: int = 4
    log_level: str = "INFO"
    off_markers: tuple[str, ...] = field(default_factory=lambda: OFF_MARKERS)
    holiday_filter: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.scan_mode, str):
            try:
                self.scan_mode = ScanMode(self.scan_mode.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown scan mode: {self.scan_mode!r}")
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be a positive integer, got {self.max_workers!r}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")
        if not self.default_jurisdiction:
            raise ConfigurationError("default_jurisdiction must not be empty")
        self.default_jurisdiction = self.default_jurisdiction.upper()
        self.off_markers = tuple(self.off_markers)
        if self.holiday_filter is not None:
            HolidayFilter.preset(self.holiday_filter)

    @property
    def full_span(self) -> bool:
        return self.scan_mode == ScanMode.FULL_SPAN

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Create a config from a dict of overrides.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "EngineConfig":
        """Load config overrides from a JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        return cls.from_dict(data)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command-line use."""
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level: {level!r}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
