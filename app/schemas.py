"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class CoWaveform(str, Enum):
    """Discrete mode selected from the raw CO concentration."""

    sine = "sine"
    triangle = "triangle"
    sawtooth = "sawtooth"


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class SensorLocationModel(BaseModel):
    """Where an individual sensor sits."""

    id: Optional[Union[int, str]] = None
    parameter: str
    coordinates: Optional[Coordinates] = None


class AirQualitySnapshot(BaseModel):
    """Raw readings, their smoothed [0, 1] features and sensor placement."""

    pm25: float
    pm25_norm: float
    pm10: float
    pm10_norm: float
    no2: float
    no2_norm: float
    o3: float
    o3_norm: float
    so2: float
    so2_norm: float
    co: float
    co_norm: float
    temperature: float
    temperature_norm: float
    humidity: float
    humidity_norm: float
    wind: float
    wind_norm: float
    co_waveform: CoWaveform
    sensors: List[SensorLocationModel] = Field(default_factory=list)
