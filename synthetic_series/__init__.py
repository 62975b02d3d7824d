from .synthetic_series import (
    HUMIDITY_JITTER,
    POLAR,
    TEMPERATE,
    TROPICAL,
    ClimateZone,
    SyntheticSeriesGenerator,
    climate_zone,
    seasonal_offset,
)

__all__ = [
    "HUMIDITY_JITTER",
    "POLAR",
    "TEMPERATE",
    "TROPICAL",
    "ClimateZone",
    "SyntheticSeriesGenerator",
    "climate_zone",
    "seasonal_offset",
]
