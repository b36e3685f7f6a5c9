"""Station and measurement models."""

from .weather import (
    CalmWind,
    NormalWind,
    VariableWind,
    WeatherMeasurement,
    WeatherStation,
    Wind,
)

__all__ = [
    "CalmWind",
    "NormalWind",
    "VariableWind",
    "WeatherMeasurement",
    "WeatherStation",
    "Wind",
]
