"""Scaling and temporal smoothing of raw readings into bounded features."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from models.records import NormalizedSnapshot, ParameterRange
from services.ranges import (
    LOG_SCALED_PARAMETERS,
    PARAMETER_ALIASES,
    PARAMETER_RANGES,
)

LOG_EPSILON = 0.0001

CO_TRIANGLE_THRESHOLD = 5.0
CO_SAWTOOTH_THRESHOLD = 15.0


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def linear_normalize(value: float, minimum: float, maximum: float) -> float:
    return (clamp(value, minimum, maximum) - minimum) / (maximum - minimum)


def log_normalize(value: float, minimum: float, maximum: float) -> float:
    """Map ``value`` onto [0, 1] on a natural-log scale.

    A non-positive ``minimum`` is floored to ``LOG_EPSILON`` so the logarithm
    stays defined; the value itself is clamped into the same floored range.
    """
    safe_min = LOG_EPSILON if minimum <= 0 else minimum
    safe_value = clamp(value, safe_min, maximum)
    log_min = math.log(safe_min)
    return (math.log(safe_value) - log_min) / (math.log(maximum) - log_min)


def classify_co(value: float) -> str:
    """Waveform class for a raw CO concentration (low, medium, high band)."""
    if value < CO_TRIANGLE_THRESHOLD:
        return "sine"
    if value < CO_SAWTOOTH_THRESHOLD:
        return "triangle"
    return "sawtooth"


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class NormalizationEngine:
    """Turns raw parameter maps into smoothed snapshots.

    The engine remembers the last snapshot it produced and blends every new
    normalized value with it using an exponential moving average. The first
    call after construction (or ``reset``) is returned unsmoothed.
    """

    def __init__(
        self,
        smoothing_factor: float = 0.2,
        ranges: Optional[Mapping[str, ParameterRange]] = None,
    ) -> None:
        if not 0 < smoothing_factor <= 1:
            raise ValueError("Smoothing factor must be in the interval (0, 1].")
        self.smoothing_factor = smoothing_factor
        self.ranges = dict(ranges or PARAMETER_RANGES)
        self._previous: Optional[NormalizedSnapshot] = None

    @property
    def has_history(self) -> bool:
        return self._previous is not None

    def reset(self) -> None:
        self._previous = None

    def normalize(self, raw: Mapping[str, Any]) -> NormalizedSnapshot:
        snapshot = NormalizedSnapshot()

        for key, bounds in self.ranges.items():
            value = self._lookup(raw, key)
            if value is None:
                value = float(bounds.min)

            if key in LOG_SCALED_PARAMETERS:
                norm = log_normalize(value, bounds.min, bounds.max)
            else:
                norm = linear_normalize(value, bounds.min, bounds.max)

            if self._previous is not None and key in self._previous.normalized:
                previous = self._previous.normalized[key]
                norm = self.smoothing_factor * norm + (1 - self.smoothing_factor) * previous

            snapshot.values[key] = value
            snapshot.normalized[key] = norm

        snapshot.co_waveform = classify_co(snapshot.values.get("co", 0.0))
        self._previous = snapshot
        return snapshot

    @staticmethod
    def _lookup(raw: Mapping[str, Any], key: str) -> Optional[float]:
        for alias in PARAMETER_ALIASES.get(key, (key,)):
            if alias in raw:
                return _coerce_number(raw[alias])
        return None
