"""Synthetic Weather Series Generation

Produces physically plausible stand-in series for weather parameters whose upstream
data is unavailable. The values follow a seasonal, latitude-aware model so charts
stay visually coherent when they mix observed and synthesized parameters.

Model:
- Climate zone from absolute latitude: tropical (<23.5°), polar (>66.5°), temperate otherwise
- Seasonal offset sin(2π·(day_of_year - 80)/365), peaking near the June solstice in the
  northern hemisphere; the southern hemisphere uses the opposite sign (six month shift)
- value = base + offset * amplitude + jitter, jitter bounded to ±15 % of the amplitude
- Rain days drawn once per (location, window) and shared by precipitation, cloud cover
  and uv-index

Randomness comes from numpy Generators seeded with a CRC32 checksum of the request,
so identical requests always yield identical series.
"""

import logging
import zlib
from dataclasses import dataclass
from datetime import date

import numpy as np
from numpy.typing import NDArray

from series_models import (
    DateWindow,
    Location,
    ObservationPoint,
    Origin,
    ParameterId,
    ParameterSeries,
)

TROPIC_LATITUDE = 23.5
POLAR_CIRCLE_LATITUDE = 66.5
SEASONAL_PHASE_DAYS = 80
DAYS_PER_YEAR = 365.0
JITTER_FRACTION = 0.15
HUMIDITY_RANGE = (30.0, 95.0)
UV_INDEX_RANGE = (0.0, 12.0)
# day-to-day spread of humidity in percentage points, wider than JITTER_FRACTION
HUMIDITY_JITTER = 10.0


@dataclass(frozen=True)
class ClimateZone:
    """Base values and amplitudes of one latitude band."""

    name: str
    base_temperature: float
    temperature_amplitude: float
    base_humidity: float
    base_rain: float
    rain_probability: float
    base_uv_index: float
    uv_index_amplitude: float


TROPICAL = ClimateZone(
    name="tropical",
    base_temperature=28.0,
    temperature_amplitude=5.0,
    base_humidity=80.0,
    base_rain=20.0,
    rain_probability=0.5,
    base_uv_index=10.0,
    uv_index_amplitude=2.0,
)

TEMPERATE = ClimateZone(
    name="temperate",
    base_temperature=15.0,
    temperature_amplitude=15.0,
    base_humidity=70.0,
    base_rain=10.0,
    rain_probability=0.3,
    base_uv_index=4.0,
    uv_index_amplitude=4.0,
)

POLAR = ClimateZone(
    name="polar",
    base_temperature=-10.0,
    temperature_amplitude=20.0,
    base_humidity=60.0,
    base_rain=5.0,
    rain_probability=0.2,
    base_uv_index=1.0,
    uv_index_amplitude=2.0,
)


def climate_zone(latitude: float) -> ClimateZone:
    """Classify a latitude into its climate zone."""
    absolute_latitude = abs(latitude)
    if absolute_latitude < TROPIC_LATITUDE:
        return TROPICAL
    if absolute_latitude > POLAR_CIRCLE_LATITUDE:
        return POLAR
    return TEMPERATE


def seasonal_offset(day: date, latitude: float) -> float:
    """Seasonal term in [-1, 1] for a calendar date.

    Positive in the local summer half of the year. For any fixed day of year the
    northern and southern hemisphere offsets have opposite sign.

    Args:
        day (date): Calendar date.
        latitude (float): Latitude of the location; negative values are southern.

    Returns:
        float: Seasonal offset of the date.
    """
    day_of_year = day.timetuple().tm_yday
    offset = float(np.sin(2.0 * np.pi * (day_of_year - SEASONAL_PHASE_DAYS) / DAYS_PER_YEAR))
    return offset if latitude >= 0 else -offset


class SyntheticSeriesGenerator:
    """Deterministic generator for seasonal, zone-based synthetic series.

    generate() never raises; unknown parameters degrade to a temperature-like series.

    Example:
        generator = SyntheticSeriesGenerator()
        series = generator.generate(
            ParameterId.TEMPERATURE,
            Location(latitude=51.505, longitude=-0.09),
            DateWindow(start=date(2024, 6, 12), end=date(2024, 6, 18)),
        )
        series.origin  # Origin.SYNTHETIC
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def generate(
        self,
        parameter_id: ParameterId,
        location: Location,
        window: DateWindow,
    ) -> ParameterSeries:
        """Generate a synthetic series covering every day of the window.

        Args:
            parameter_id (ParameterId): Parameter to synthesize.
            location (Location): Location whose latitude selects zone and hemisphere.
            window (DateWindow): Window to cover, one point per calendar day.

        Returns:
            ParameterSeries: Series with origin=Origin.SYNTHETIC and values rounded
                to 2 decimal digits.
        """
        zone = climate_zone(location.latitude)
        dates = window.dates()
        offsets = np.array([seasonal_offset(day, location.latitude) for day in dates])
        rng = np.random.default_rng(self._seed(parameter_id.value, location, window))
        rain_days = self._rain_days(zone, location, window, offsets)

        self.logger.info(
            f"Generating {len(dates)} synthetic {parameter_id.value} values for {zone.name} zone at Lat.: {location.latitude}°, Lon.: {location.longitude}°"
        )

        values = self._values(parameter_id, zone, location, offsets, rain_days, rng)

        points = tuple(
            ObservationPoint(timestamp=day, value=round(float(value), 2))
            for day, value in zip(dates, values)
        )
        return ParameterSeries(parameter_id=parameter_id, points=points, origin=Origin.SYNTHETIC)

    def _values(
        self,
        parameter_id: ParameterId,
        zone: ClimateZone,
        location: Location,
        offsets: NDArray,
        rain_days: NDArray,
        rng: np.random.Generator,
    ) -> NDArray:
        size = offsets.shape[0]

        if parameter_id == ParameterId.FEELS_LIKE:
            amplitude = zone.temperature_amplitude + 2.0
            return (
                zone.base_temperature - 1.0
                + offsets * amplitude
                + self._jitter(rng, amplitude, size)
            )

        if parameter_id == ParameterId.PRECIPITATION:
            magnitude = zone.base_rain * (0.5 + rng.random(size) * 1.5)
            return np.where(rain_days, magnitude, 0.0)

        if parameter_id == ParameterId.HUMIDITY:
            # colder days are more humid
            values = (
                zone.base_humidity
                - offsets * 20.0
                + rng.uniform(-HUMIDITY_JITTER, HUMIDITY_JITTER, size)
            )
            return np.clip(values, *HUMIDITY_RANGE)

        if parameter_id == ParameterId.WIND_SPEED:
            latitude_factor = abs(location.latitude) / 90.0
            base_wind = 10.0 + 20.0 * latitude_factor
            seasonal_factor = 1.0 - 0.5 * (offsets * 0.5 + 0.5)
            return base_wind * seasonal_factor * (0.5 + rng.random(size) * 0.8)

        if parameter_id == ParameterId.CLOUD_COVER:
            return np.where(
                rain_days,
                60.0 + rng.random(size) * 40.0,
                20.0 + rng.random(size) * 50.0,
            )

        if parameter_id == ParameterId.UV_INDEX:
            values = (
                zone.base_uv_index
                + offsets * zone.uv_index_amplitude
                + self._jitter(rng, zone.uv_index_amplitude, size)
            )
            values = np.where(rain_days, values * 0.5, values)
            return np.clip(values, *UV_INDEX_RANGE)

        if parameter_id != ParameterId.TEMPERATURE:
            self.logger.warning(
                f"No synthetic model for parameter {parameter_id!r}. Falling back to temperature."
            )

        return (
            zone.base_temperature
            + offsets * zone.temperature_amplitude
            + self._jitter(rng, zone.temperature_amplitude, size)
        )

    def _rain_days(
        self,
        zone: ClimateZone,
        location: Location,
        window: DateWindow,
        offsets: NDArray,
    ) -> NDArray:
        """Decide which days of the window are rain days.

        Rain is more likely in the local summer half of the year. The draw only
        depends on location and window, so every parameter sees the same rain days.
        """
        rng = np.random.default_rng(self._seed("rain-days", location, window))
        seasonal_rain_factor = offsets * 0.5 + 1.0
        return rng.random(offsets.shape[0]) < zone.rain_probability * seasonal_rain_factor

    @staticmethod
    def _jitter(rng: np.random.Generator, amplitude: float, size: int) -> NDArray:
        bound = JITTER_FRACTION * amplitude
        return rng.uniform(-bound, bound, size)

    @staticmethod
    def _seed(key: str, location: Location, window: DateWindow) -> int:
        token = f"{key}|{location.latitude:.3f}|{location.longitude:.3f}|{window.start.isoformat()}|{window.end.isoformat()}"
        return zlib.crc32(token.encode("utf-8"))
