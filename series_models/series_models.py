"""Weather Explorer Data Models and Error Taxonomy

This module defines the value objects exchanged between every component of the
time-series engine: geographic locations, date windows, the weather parameter
catalogue, per-parameter observation series, the merged timestamp-aligned table
and the per-parameter normalization bounds. It also defines the error taxonomy
shared by the engine and its outer layers.

Core Components:

Request Inputs:
- Location: Validated latitude/longitude pair of a clicked map point
- DateWindow: Inclusive calendar date range with ordered bounds

Parameter Catalogue:
- ParameterId: Enumeration of the supported weather parameters
- ParameterSpec: Upstream field, canonical metric unit and physical quantity
- PARAMETERS: Lookup table from ParameterId to ParameterSpec

Series and Tables:
- Origin: Provenance tag of a series (upstream observation or synthetic)
- ObservationPoint: One daily value, possibly absent
- ParameterSeries: Ordered daily points of a single parameter with origin
- TableRow / AggregatedTable: Outer-joined, timestamp-keyed table of all parameters
- Bounds: Per-parameter min/max used to normalize series onto a 0-1 scale
- AggregationResult: Everything produced by one aggregation request

Error Taxonomy:
- InvalidDateError: Malformed or out-of-order window input
- InvalidLocationError: Coordinates outside the valid geographic range
- ProviderError: Upstream transport, status or payload failure
- UnsupportedUnitError: Unknown parameter/unit combination

Canonical Units:
All values are stored in metric units:
- temperature and feels-like in Celsius (°C)
- precipitation in millimetres (mm)
- wind speed in kilometres per hour (km/h)
- humidity and cloud cover in percent (%)
- uv-index as a dimensionless index

Note:
All entities are created fresh per aggregation request and are immutable after
construction. An absent value is represented by None and is never the same as 0.0.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple


class InvalidDateError(ValueError):
    """Raised when a date input is malformed or a window is out of order."""


class InvalidLocationError(ValueError):
    """Raised when a latitude or longitude lies outside the valid range."""


class UnsupportedUnitError(ValueError):
    """Raised when a conversion is requested for an unknown parameter/unit pair."""


class ProviderError(RuntimeError):
    """Upstream provider failure.

    Covers transport errors, non-2xx statuses, timeouts and malformed payloads.
    The engine always recovers from it locally by synthesizing the series.

    Attributes:
        status (Optional[int]): HTTP status code when one was received.
        message (str): Human readable description of the failure.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        if self.status is not None:
            return f"HTTP {self.status}: {self.message}"
        return self.message


class ParameterId(str, Enum):
    TEMPERATURE = "temperature"
    FEELS_LIKE = "feels-like"
    PRECIPITATION = "precipitation"
    HUMIDITY = "humidity"
    WIND_SPEED = "wind-speed"
    CLOUD_COVER = "cloud-cover"
    UV_INDEX = "uv-index"

    @classmethod
    def parse(cls, value: Any) -> "ParameterId":
        """Parse a parameter id from its string value.

        Args:
            value (Any): ParameterId instance or its string value, e.g. "wind-speed".

        Raises:
            ValueError: When the value does not name a known parameter.

        Returns:
            ParameterId: Matching enumeration member.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise ValueError(
                f"Unknown parameter id. Expected one of: {[p.value for p in cls]} Got {value!r} instead."
            )


class Origin(str, Enum):
    UPSTREAM = "upstream"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class ParameterSpec:
    """Static description of a weather parameter.

    Attributes:
        name (str): Display name shown by the UI.
        field (str): Field name of the parameter in a raw daily record.
        unit (str): Canonical metric unit label.
        quantity (str): Physical quantity, selects the unit conversion.
    """

    name: str
    field: str
    unit: str
    quantity: str


PARAMETERS: Dict[ParameterId, ParameterSpec] = {
    ParameterId.TEMPERATURE: ParameterSpec(
        name="Temperature",
        field="temperature_2m_mean",
        unit="°C",
        quantity="temperature",
    ),
    ParameterId.FEELS_LIKE: ParameterSpec(
        name="Feels Like Temperature",
        field="apparent_temperature_mean",
        unit="°C",
        quantity="temperature",
    ),
    ParameterId.PRECIPITATION: ParameterSpec(
        name="Precipitation",
        field="precipitation_sum",
        unit="mm",
        quantity="precipitation",
    ),
    ParameterId.HUMIDITY: ParameterSpec(
        name="Humidity",
        field="relative_humidity_2m_mean",
        unit="%",
        quantity="percentage",
    ),
    ParameterId.WIND_SPEED: ParameterSpec(
        name="Wind Speed",
        field="wind_speed_10m_mean",
        unit="km/h",
        quantity="speed",
    ),
    ParameterId.CLOUD_COVER: ParameterSpec(
        name="Cloud Cover",
        field="cloud_cover_mean",
        unit="%",
        quantity="percentage",
    ),
    ParameterId.UV_INDEX: ParameterSpec(
        name="UV Index",
        field="uv_index_max",
        unit="index",
        quantity="index",
    ),
}


@dataclass(frozen=True)
class Location:
    """Geographic point selected on the map.

    Attributes:
        latitude (float): Decimal degrees in [-90, 90].
        longitude (float): Decimal degrees in [-180, 180].

    Raises:
        InvalidLocationError: When a coordinate is not a finite number or out of range.
    """

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        latitude = self.__coerce(self.latitude, "latitude")
        longitude = self.__coerce(self.longitude, "longitude")

        if not -90.0 <= latitude <= 90.0:
            raise InvalidLocationError(
                f"Parameter latitude must be between -90 and 90 (incl.) Got {latitude}"
            )
        if not -180.0 <= longitude <= 180.0:
            raise InvalidLocationError(
                f"Parameter longitude must be between -180 and 180 (incl.) Got {longitude}"
            )

        object.__setattr__(self, "latitude", latitude)
        object.__setattr__(self, "longitude", longitude)

    @staticmethod
    def __coerce(value: Any, name: str) -> float:
        if isinstance(value, bool):
            raise InvalidLocationError(f"Parameter {name} must be a number. Got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidLocationError(f"Parameter {name} must be a number. Got {value!r}")
        if not math.isfinite(number):
            raise InvalidLocationError(f"Parameter {name} must be finite. Got {value!r}")
        return number


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar date range.

    Attributes:
        start (date): First day of the window.
        end (date): Last day of the window, never before start.

    Raises:
        InvalidDateError: When end lies before start.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidDateError(
                f"Window start must not be after its end. Got {self.start} - {self.end}"
            )

    @property
    def days(self) -> int:
        """Number of calendar days in the window, both bounds included."""
        return (self.end - self.start).days + 1

    def dates(self) -> List[date]:
        """Every calendar date of the window in ascending order."""
        return [self.start + timedelta(days=offset) for offset in range(self.days)]

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class ObservationPoint:
    timestamp: date
    value: Optional[float]

    @property
    def is_absent(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class ParameterSeries:
    """Daily series of a single weather parameter.

    Attributes:
        parameter_id (ParameterId): Parameter the values belong to.
        points (Tuple[ObservationPoint, ...]): Points ordered by ascending timestamp.
        origin (Origin): Provenance of the whole series.

    Raises:
        ValueError: When points are not strictly ascending by timestamp.
    """

    parameter_id: ParameterId
    points: Tuple[ObservationPoint, ...]
    origin: Origin

    def __post_init__(self) -> None:
        points = tuple(self.points)
        for previous, current in zip(points, points[1:]):
            if current.timestamp <= previous.timestamp:
                raise ValueError(
                    f"Series points must be strictly ascending without duplicates. Got {previous.timestamp} before {current.timestamp}"
                )
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[ObservationPoint]:
        return iter(self.points)

    @property
    def timestamps(self) -> List[date]:
        return [point.timestamp for point in self.points]

    @property
    def values(self) -> List[Optional[float]]:
        return [point.value for point in self.points]

    def present_values(self) -> List[float]:
        return [point.value for point in self.points if point.value is not None]


@dataclass(frozen=True)
class Bounds:
    """Min/max of a parameter over its present values.

    Attributes:
        min (float): Smallest present value.
        max (float): Largest present value.
    """

    min: float
    max: float

    def normalize(self, value: Optional[float]) -> Optional[float]:
        """Map a value onto the 0-1 scale spanned by the bounds.

        A flat series (min == max) maps to 0.5; absent values stay absent.
        """
        if value is None:
            return None
        if self.max == self.min:
            return 0.5
        return (value - self.min) / (self.max - self.min)


@dataclass(frozen=True)
class TableRow:
    timestamp: date
    values: Mapping[ParameterId, Optional[float]]

    def get(self, parameter_id: ParameterId) -> Optional[float]:
        return self.values.get(parameter_id)


@dataclass(frozen=True)
class AggregatedTable:
    """Timestamp-aligned table of several parameter series.

    Rows exist for every timestamp produced by any contributing series (outer join)
    and are ordered ascending. Each row holds one optional value per parameter.

    Attributes:
        parameter_ids (Tuple[ParameterId, ...]): Column order of the table.
        rows (Tuple[TableRow, ...]): Rows ordered by ascending timestamp.
    """

    parameter_ids: Tuple[ParameterId, ...]
    rows: Tuple[TableRow, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[TableRow]:
        return iter(self.rows)

    @property
    def timestamps(self) -> List[date]:
        return [row.timestamp for row in self.rows]

    def column(self, parameter_id: ParameterId) -> List[Optional[float]]:
        return [row.get(parameter_id) for row in self.rows]

    def to_records(self) -> List[Dict[str, Any]]:
        """Flatten the table into JSON friendly records.

        Returns:
            List[Dict[str, Any]]: One dictionary per row with an ISO "timestamp"
                key and one key per parameter id value. Absent values are None.
        """
        return [
            {
                "timestamp": row.timestamp.isoformat(),
                **{parameter_id.value: row.get(parameter_id) for parameter_id in self.parameter_ids},
            }
            for row in self.rows
        ]

    def normalized(self, bounds: Mapping[ParameterId, Bounds]) -> "AggregatedTable":
        """Return a copy of the table with every column scaled onto 0-1.

        Parameters without bounds keep only absent values.
        """
        rows = tuple(
            TableRow(
                timestamp=row.timestamp,
                values={
                    parameter_id: (
                        bounds[parameter_id].normalize(row.get(parameter_id))
                        if parameter_id in bounds
                        else None
                    )
                    for parameter_id in self.parameter_ids
                },
            )
            for row in self.rows
        )
        return AggregatedTable(parameter_ids=self.parameter_ids, rows=rows)


@dataclass(frozen=True)
class AggregationResult:
    """Output of one aggregation request.

    Attributes:
        window (DateWindow): Window the series were produced for.
        table (AggregatedTable): Outer-joined table of all requested parameters.
        bounds (Mapping[ParameterId, Bounds]): Bounds of parameters with at least one value.
        origins (Mapping[ParameterId, Origin]): Provenance of every requested parameter.
        series (Mapping[ParameterId, ParameterSeries]): Individual per-parameter series.
    """

    window: DateWindow
    table: AggregatedTable
    bounds: Mapping[ParameterId, Bounds]
    origins: Mapping[ParameterId, Origin]
    series: Mapping[ParameterId, ParameterSeries]


def parse_parameter_ids(values: Sequence[Any]) -> List[ParameterId]:
    """Parse a sequence of parameter ids, dropping duplicates while preserving order.

    Raises:
        ValueError: When any value does not name a known parameter.
    """
    parsed: List[ParameterId] = []
    for value in values:
        parameter_id = ParameterId.parse(value)
        if parameter_id not in parsed:
            parsed.append(parameter_id)
    return parsed
