"""Fixed bounds and accepted aliases for every tracked parameter."""

from __future__ import annotations

from typing import Dict, Tuple

from models.records import ParameterRange

PARAMETER_RANGES: Dict[str, ParameterRange] = {
    "pm25": ParameterRange(min=0, max=500),
    "pm10": ParameterRange(min=0, max=600),
    "no2": ParameterRange(min=0, max=200),
    "o3": ParameterRange(min=0, max=200),
    "so2": ParameterRange(min=0, max=100),
    "co": ParameterRange(min=0, max=50),
    "temperature": ParameterRange(min=-20, max=50),
    "humidity": ParameterRange(min=0, max=100),
    "wind": ParameterRange(min=0, max=30),
}

PARAMETER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "pm25": ("pm25", "pm2.5"),
    "pm10": ("pm10",),
    "no2": ("no2",),
    "o3": ("o3",),
    "so2": ("so2",),
    "co": ("co",),
    "temperature": ("temperature", "temp"),
    "humidity": ("humidity",),
    "wind": ("wind", "wind_speed"),
}

# Concentrations are log-distributed; everything else scales linearly.
LOG_SCALED_PARAMETERS = frozenset({"pm25", "pm10"})

TRACKED_PARAMETERS: Tuple[str, ...] = tuple(PARAMETER_RANGES)
