from .unit_converter import (
    IMPERIAL,
    METRIC,
    UNIT_SYSTEMS,
    convert,
    convert_optional,
    unit_label,
)

__all__ = [
    "IMPERIAL",
    "METRIC",
    "UNIT_SYSTEMS",
    "convert",
    "convert_optional",
    "unit_label",
]
