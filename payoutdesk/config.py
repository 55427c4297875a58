"""Engine defaults and logging setup."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import IO, Any

from payoutdesk.errors import ConfigurationError
from payoutdesk.sorting import BREAKDOWN_SORT_KEYS
from payoutdesk.types import Granularity, SortDirection, WindowKind
from payoutdesk.window import TimeWindow


__all__ = [
    "EngineConfig",
    "configure_logging",
]


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _level_name(level: str | int) -> str:
    name = logging.getLevelName(level) if isinstance(level, int) else str(level).strip().upper()
    if name not in _LOG_LEVELS:
        raise ConfigurationError(f"log_level must be one of {_LOG_LEVELS}, got {level!r}")
    return name


def configure_logging(level: str | int = "INFO", force: bool = False, stream: IO[str] | None = None) -> None:
    """Attach a console handler to the root logger.

    Leaves an already-configured root logger alone unless *force* is set,
    in which case existing handlers are removed first. Records carry the
    emitting module (``payoutdesk.window``, ``payoutdesk.aggregation``...).

    Raises:
        ConfigurationError: if *level* is not a standard level name.
    """
    name = _level_name(level)
    root = logging.getLogger()

    if root.hasHandlers() and not force:
        return

    if force:
        for handler in list(root.handlers):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(name)


@dataclass(frozen=True)
class EngineConfig:
    """Defaults a dashboard applies before the user touches any selector."""
    default_window: WindowKind = WindowKind.ALL
    default_granularity: Granularity = Granularity.WEEKLY
    default_sort_key: str = "total_accrued"
    default_sort_direction: SortDirection = SortDirection.DESC
    log_level: str = "INFO"

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> EngineConfig:
        """Validate and construct from a raw config dict.

        Missing keys fall back to the defaults. Raises ``ConfigurationError``
        with a clear message on bad values instead of letting ``KeyError`` or
        ``TypeError`` propagate.
        """
        defaults = cls()

        window = WindowKind.parse(raw.get("window", defaults.default_window))
        if window == WindowKind.CUSTOM:
            raise ConfigurationError("window: CUSTOM needs explicit dates and cannot be a default")

        level = _level_name(raw.get("log_level", defaults.log_level))

        sort_key = raw.get("sort_key", defaults.default_sort_key)
        if not isinstance(sort_key, str) or not sort_key:
            raise ConfigurationError("sort_key is missing or not a string")
        if sort_key not in BREAKDOWN_SORT_KEYS:
            raise ConfigurationError(
                f"sort_key {sort_key!r} is not sortable; expected one of {sorted(BREAKDOWN_SORT_KEYS)}"
            )

        return cls(
            default_window=window,
            default_granularity=Granularity.parse(raw.get("granularity", defaults.default_granularity)),
            default_sort_key=sort_key,
            default_sort_direction=SortDirection.parse(raw.get("sort_direction", defaults.default_sort_direction)),
            log_level=level,
        )

    def window(self) -> TimeWindow:
        return TimeWindow(self.default_window)

    def apply_logging(self, force: bool = False) -> None:
        configure_logging(self.log_level, force=force)
