from .series_models import (
    PARAMETERS,
    AggregatedTable,
    AggregationResult,
    Bounds,
    DateWindow,
    InvalidDateError,
    InvalidLocationError,
    Location,
    ObservationPoint,
    Origin,
    ParameterId,
    ParameterSeries,
    ParameterSpec,
    ProviderError,
    TableRow,
    UnsupportedUnitError,
    parse_parameter_ids,
)

__all__ = [
    "PARAMETERS",
    "AggregatedTable",
    "AggregationResult",
    "Bounds",
    "DateWindow",
    "InvalidDateError",
    "InvalidLocationError",
    "Location",
    "ObservationPoint",
    "Origin",
    "ParameterId",
    "ParameterSeries",
    "ParameterSpec",
    "ProviderError",
    "TableRow",
    "UnsupportedUnitError",
    "parse_parameter_ids",
]
