from .series_engine import (
    ExplorerRequest,
    ExplorerResponse,
    MultiSeriesAggregator,
    ParameterExtractor,
    SeriesExplorer,
    SeriesFetcher,
    convert_result,
    merge_series,
    record_date,
)

__all__ = [
    "ExplorerRequest",
    "ExplorerResponse",
    "MultiSeriesAggregator",
    "ParameterExtractor",
    "SeriesExplorer",
    "SeriesFetcher",
    "convert_result",
    "merge_series",
    "record_date",
]
