"""Unit conversion between the metric storage units and display unit systems.

Every value inside the engine is metric (°C, mm, km/h, %, index). Conversion is
applied on read, for presentation only.

Supported Conversions:
- temperature: °C <-> °F (v * 9/5 + 32)
- precipitation: mm <-> in (v / 25.4)
- speed: km/h <-> mph (v / 1.60934)
- percentage and index: identity in every unit system
"""

from typing import Any, Callable, Dict, Optional, Tuple

from series_models import PARAMETERS, ParameterId, UnsupportedUnitError

METRIC = "metric"
IMPERIAL = "imperial"
UNIT_SYSTEMS = (METRIC, IMPERIAL)

KM_PER_MILE = 1.60934
MM_PER_INCH = 25.4

Converter = Callable[[float], float]

CONVERSIONS: Dict[Tuple[str, str, str], Converter] = {
    ("temperature", METRIC, IMPERIAL): lambda v: v * 9.0 / 5.0 + 32.0,
    ("temperature", IMPERIAL, METRIC): lambda v: (v - 32.0) * 5.0 / 9.0,
    ("precipitation", METRIC, IMPERIAL): lambda v: v / MM_PER_INCH,
    ("precipitation", IMPERIAL, METRIC): lambda v: v * MM_PER_INCH,
    ("speed", METRIC, IMPERIAL): lambda v: v / KM_PER_MILE,
    ("speed", IMPERIAL, METRIC): lambda v: v * KM_PER_MILE,
}

IDENTITY_QUANTITIES = ("percentage", "index")

UNIT_LABELS: Dict[Tuple[str, str], str] = {
    ("temperature", METRIC): "°C",
    ("temperature", IMPERIAL): "°F",
    ("precipitation", METRIC): "mm",
    ("precipitation", IMPERIAL): "in",
    ("speed", METRIC): "km/h",
    ("speed", IMPERIAL): "mph",
    ("percentage", METRIC): "%",
    ("percentage", IMPERIAL): "%",
    ("index", METRIC): "index",
    ("index", IMPERIAL): "index",
}


def _quantity(parameter_id: Any) -> str:
    try:
        parameter = ParameterId.parse(parameter_id)
    except ValueError as exc:
        raise UnsupportedUnitError(
            f"No unit conversion available for parameter {parameter_id!r}"
        ) from exc
    return PARAMETERS[parameter].quantity


def _check_unit_system(unit: str) -> None:
    if unit not in UNIT_SYSTEMS:
        raise UnsupportedUnitError(
            f"Unknown unit system {unit!r}. Expected one of: {list(UNIT_SYSTEMS)}"
        )


def convert(
    parameter_id: ParameterId | str,
    value: float,
    from_unit: str = METRIC,
    to_unit: str = METRIC,
) -> float:
    """Convert a parameter value between unit systems.

    Args:
        parameter_id (ParameterId | str): Parameter the value belongs to.
        value (float): Value expressed in from_unit.
        from_unit (str): Source unit system, "metric" or "imperial".
        to_unit (str): Target unit system, "metric" or "imperial".

    Raises:
        UnsupportedUnitError: When the parameter or a unit system is unknown.

    Returns:
        float: Value expressed in to_unit.
    """
    quantity = _quantity(parameter_id)
    _check_unit_system(from_unit)
    _check_unit_system(to_unit)

    if from_unit == to_unit or quantity in IDENTITY_QUANTITIES:
        return float(value)

    converter = CONVERSIONS.get((quantity, from_unit, to_unit))
    if converter is None:
        raise UnsupportedUnitError(
            f"No conversion from {from_unit} to {to_unit} for parameter {parameter_id!r}"
        )
    return converter(float(value))


def convert_optional(
    parameter_id: ParameterId | str,
    value: Optional[float],
    from_unit: str = METRIC,
    to_unit: str = METRIC,
) -> Optional[float]:
    """convert() that passes absent values through unchanged."""
    if value is None:
        return None
    return convert(parameter_id, value, from_unit, to_unit)


def unit_label(parameter_id: ParameterId | str, unit_system: str = METRIC) -> str:
    """Display label of a parameter's unit, e.g. "°F" for temperature in imperial."""
    quantity = _quantity(parameter_id)
    _check_unit_system(unit_system)
    return UNIT_LABELS[(quantity, unit_system)]
