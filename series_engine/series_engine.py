"""Weather Time-Series Aggregation and Synthesis Engine

This module implements the engine behind the weather explorer: given a location
and a date window it produces one daily series per requested weather parameter,
reconciles provider failures with synthetic data, merges all series into one
timestamp-aligned table and computes per-parameter normalization bounds.

Core Components:

Extraction:
- ParameterExtractor: Maps a raw daily record to the scalar value of one parameter

Fetching:
- SeriesFetcher: Request-scoped per-parameter fetcher. Shares one provider call
  across all parameters of a request, enforces a wall-clock timeout per call and
  falls back to SyntheticSeriesGenerator when the call fails

Aggregation:
- MultiSeriesAggregator: Concurrent fan-out over the parameter set, outer join by
  timestamp, per-parameter min/max bounds and origin reporting

Presentation:
- ExplorerRequest / ExplorerResponse: Contract with the UI layer
- SeriesExplorer: Resolves the window, aggregates and converts values into the
  requested unit system

Fallback Rules:
- Provider call fails (error, timeout, no records at all): the whole series of the
  affected parameter is synthesized, origin=synthetic
- Provider call succeeds with partial coverage: present days keep their upstream
  values, missing days stay absent, origin=upstream. Gaps are never interpolated.

Concurrency Model:
Series of one request are fetched concurrently with asyncio.gather. The blocking
provider call runs in a worker thread via asyncio.to_thread. Fetches share nothing
mutable except the memoized provider task, so each one can be cancelled on its own.

Example:
    config = ExplorerConfig(create_from_file=True)
    explorer = SeriesExplorer(config=config, provider=OpenMeteoProvider(config))
    response = asyncio.run(
        explorer.explore(
            ExplorerRequest(
                parameter_ids=[ParameterId.TEMPERATURE, ParameterId.PRECIPITATION],
                location=Location(latitude=51.505, longitude=-0.09),
                reference_date="2024-06-15",
                unit_system="imperial",
            )
        )
    )
"""

import asyncio
import logging
import math
import numbers
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from date_window import DateWindowResolver, parse_date
from explorer_config import ExplorerConfig
from series_models import (
    PARAMETERS,
    AggregatedTable,
    AggregationResult,
    Bounds,
    DateWindow,
    Location,
    ObservationPoint,
    Origin,
    ParameterId,
    ParameterSeries,
    ProviderError,
    TableRow,
    UnsupportedUnitError,
    parse_parameter_ids,
)
from synthetic_series import SyntheticSeriesGenerator
from unit_converter import METRIC, UNIT_SYSTEMS, convert_optional, unit_label
from weather_provider import ProviderAdapter, Record


class ParameterExtractor:
    """Maps raw daily records to scalar parameter values.

    The lookup table parameter id -> raw field name is taken from PARAMETERS.
    Unknown parameter ids fall back to the temperature field and log a warning.
    """

    FALLBACK_PARAMETER = ParameterId.TEMPERATURE

    def __init__(self) -> None:
        self.fields: Dict[str, str] = {
            parameter.value: spec.field for parameter, spec in PARAMETERS.items()
        }
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def field_for(self, parameter_id: ParameterId | str) -> str:
        key = parameter_id.value if isinstance(parameter_id, ParameterId) else str(parameter_id)
        field_name = self.fields.get(key)
        if field_name is None:
            field_name = self.fields[self.FALLBACK_PARAMETER.value]
            self.logger.warning(
                f"Unknown parameter id {parameter_id!r}. Falling back to field {field_name}."
            )
        return field_name

    def extract(self, record: Mapping[str, Any], parameter_id: ParameterId | str) -> Optional[float]:
        """Extract the value of a parameter from a raw daily record.

        Args:
            record (Mapping[str, Any]): Raw daily record of the provider.
            parameter_id (ParameterId | str): Parameter to extract.

        Returns:
            Optional[float]: Numeric value, or None when the field is missing or its
                value is not a finite number.
        """
        value = record.get(self.field_for(parameter_id))

        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return None

        number = float(value)
        if not math.isfinite(number):
            return None
        return number


def record_date(record: Mapping[str, Any]) -> Optional[date]:
    """Calendar date of a raw record, None when it has no valid date."""
    try:
        return parse_date(record.get("date"), "date")
    except ValueError:
        return None


class SeriesFetcher:
    """Request-scoped fetcher producing one complete series per parameter.

    A SeriesFetcher belongs to a single aggregation request. It memoizes the
    provider call as an asyncio task, so a provider returning every parameter in
    one payload is called once per (location, window) no matter how many
    parameters are fetched. Parameter scoped providers are called once per parameter.

    fetch_series never raises: provider errors, timeouts and empty payloads are
    absorbed into a synthetic series.

    Attributes:
        provider (ProviderAdapter): Upstream data source.
        generator (SyntheticSeriesGenerator): Fallback series source.
        extractor (ParameterExtractor): Raw record to scalar mapping.
        timeout (float): Wall-clock seconds per provider call.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        generator: Optional[SyntheticSeriesGenerator] = None,
        extractor: Optional[ParameterExtractor] = None,
        timeout: float = 15.0,
    ) -> None:
        self.provider = provider
        self.generator = generator or SyntheticSeriesGenerator()
        self.extractor = extractor or ParameterExtractor()
        self.timeout = timeout
        self.__calls: Dict[Hashable, asyncio.Task] = {}
        self.logger = logging.getLogger(name=self.__class__.__name__)

    @property
    def provider_calls(self) -> int:
        """Number of distinct provider calls issued by this fetcher."""
        return len(self.__calls)

    async def fetch_series(
        self,
        parameter_id: ParameterId,
        location: Location,
        window: DateWindow,
    ) -> ParameterSeries:
        """Fetch the series of one parameter for the whole window.

        Args:
            parameter_id (ParameterId): Parameter to fetch.
            location (Location): Location of the request.
            window (DateWindow): Window of the request.

        Returns:
            ParameterSeries: Upstream series with one point per window day, absent
                where the provider had no numeric value, or a synthetic series
                when the provider call failed.
        """
        try:
            records = await self._records(parameter_id, location, window)
        except ProviderError as exc:
            self.logger.warning(
                f"Provider {self.provider.name} failed for {parameter_id.value}: {exc}. Using synthetic data."
            )
            return self.generator.generate(parameter_id, location, window)

        return self.build_series(parameter_id, records, window)

    def build_series(
        self,
        parameter_id: ParameterId,
        records: Sequence[Record],
        window: DateWindow,
    ) -> ParameterSeries:
        """Align raw records with the expected dates of a window.

        Records outside the window or without a valid date are ignored. When a date
        appears more than once the last record wins.
        """
        by_date: Dict[date, Record] = {}
        for record in records:
            day = record_date(record)
            if day is not None and window.contains(day):
                by_date[day] = record

        points = tuple(
            ObservationPoint(
                timestamp=day,
                value=(
                    self.extractor.extract(by_date[day], parameter_id)
                    if day in by_date
                    else None
                ),
            )
            for day in window.dates()
        )

        missing = sum(point.is_absent for point in points)
        if missing:
            self.logger.info(
                f"{parameter_id.value}: {missing} of {len(points)} days missing upstream. Leaving them absent."
            )

        return ParameterSeries(parameter_id=parameter_id, points=points, origin=Origin.UPSTREAM)

    async def _records(
        self,
        parameter_id: ParameterId,
        location: Location,
        window: DateWindow,
    ) -> List[Record]:
        if self.provider.parameter_scoped:
            key: Hashable = (location, window, parameter_id)
        else:
            key = (location, window)

        task = self.__calls.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._call_provider(
                    location,
                    window,
                    parameter_id if self.provider.parameter_scoped else None,
                )
            )
            self.__calls[key] = task

        return await asyncio.shield(task)

    async def _call_provider(
        self,
        location: Location,
        window: DateWindow,
        parameter_id: Optional[ParameterId],
    ) -> List[Record]:
        try:
            records = await asyncio.wait_for(
                asyncio.to_thread(self.provider.fetch_daily, location, window, parameter_id),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(f"no response within {self.timeout} seconds") from exc
        except ProviderError:
            raise
        except Exception as exc:
            self.logger.exception(f"Provider {self.provider.name} raised an unexpected error")
            raise ProviderError(f"unexpected provider error: {exc}") from exc

        if isinstance(records, tuple):
            records = list(records)
        if not isinstance(records, list) or not records:
            raise ProviderError("missing daily data")
        if not all(isinstance(record, Mapping) for record in records):
            raise ProviderError("malformed daily records")

        return records

    async def close(self) -> None:
        """Cancel provider calls still in flight and wait for them to settle."""
        pending = [task for task in self.__calls.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class MultiSeriesAggregator:
    """Concurrent aggregation of several parameter series into one table.

    Every aggregate() call uses a fresh SeriesFetcher, so provider calls are shared
    among the parameters of one request and never across requests.

    Attributes:
        provider (ProviderAdapter): Upstream data source.
        generator (SyntheticSeriesGenerator): Fallback series source.
        timeout (float): Wall-clock seconds per provider call.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        generator: Optional[SyntheticSeriesGenerator] = None,
        timeout: float = 15.0,
    ) -> None:
        self.provider = provider
        self.generator = generator or SyntheticSeriesGenerator()
        self.timeout = timeout
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def create_fetcher(self) -> SeriesFetcher:
        return SeriesFetcher(
            provider=self.provider,
            generator=self.generator,
            timeout=self.timeout,
        )

    async def aggregate(
        self,
        parameter_ids: Sequence[ParameterId | str],
        location: Location,
        window: DateWindow,
    ) -> AggregationResult:
        """Fetch all parameters concurrently and merge them into one table.

        Args:
            parameter_ids (Sequence[ParameterId | str]): Parameters to aggregate.
                Duplicates are dropped, order is preserved.
            location (Location): Location of the request.
            window (DateWindow): Window of the request.

        Raises:
            ValueError: When a parameter id is unknown.

        Returns:
            AggregationResult: Merged table, bounds, origins and individual series.
        """
        parameters = parse_parameter_ids(parameter_ids)
        fetcher = self.create_fetcher()

        self.logger.info(
            f"Aggregating {[parameter.value for parameter in parameters]} for {window.start} - {window.end}"
        )

        try:
            results = await asyncio.gather(
                *[fetcher.fetch_series(parameter, location, window) for parameter in parameters]
            )
        finally:
            await fetcher.close()

        series = dict(zip(parameters, results))
        return self.merge(window, parameters, series)

    def merge(
        self,
        window: DateWindow,
        parameters: List[ParameterId],
        series: Mapping[ParameterId, ParameterSeries],
    ) -> AggregationResult:
        """Outer join series by timestamp and compute bounds.

        Rows exist for every timestamp of any series. Parameters without a single
        present value get no bounds entry.
        """
        table, bounds = merge_series(parameters, series)
        origins = {parameter: series[parameter].origin for parameter in parameters}

        synthetic = [parameter.value for parameter, origin in origins.items() if origin == Origin.SYNTHETIC]
        if synthetic:
            self.logger.info(f"Synthetic series used for {synthetic}")

        return AggregationResult(
            window=window,
            table=table,
            bounds=bounds,
            origins=origins,
            series=dict(series),
        )


def merge_series(
    parameters: List[ParameterId],
    series: Mapping[ParameterId, ParameterSeries],
) -> Tuple[AggregatedTable, Dict[ParameterId, Bounds]]:
    """Merge per-parameter series into an AggregatedTable with bounds.

    Args:
        parameters (List[ParameterId]): Column order of the table.
        series (Mapping[ParameterId, ParameterSeries]): One series per parameter.

    Returns:
        Tuple[AggregatedTable, Dict[ParameterId, Bounds]]: Table sorted ascending by
            timestamp and bounds of every parameter with at least one present value.
    """
    if not parameters:
        return AggregatedTable(parameter_ids=()), {}

    columns = [
        pd.Series(
            [point.value for point in series[parameter].points],
            index=pd.Index([point.timestamp for point in series[parameter].points], dtype=object),
            name=parameter.value,
            dtype="float64",
        )
        for parameter in parameters
    ]
    data = pd.concat(columns, axis=1, join="outer").sort_index()

    bounds: Dict[ParameterId, Bounds] = {}
    for parameter in parameters:
        column = data[parameter.value].dropna()
        if not column.empty:
            bounds[parameter] = Bounds(min=float(column.min()), max=float(column.max()))

    rows = tuple(
        TableRow(
            timestamp=timestamp,
            values={
                parameter: (None if pd.isna(value) else float(value))
                for parameter, value in zip(parameters, row)
            },
        )
        for timestamp, row in zip(data.index, data.itertuples(index=False, name=None))
    )

    return AggregatedTable(parameter_ids=tuple(parameters), rows=rows), bounds


@dataclass(frozen=True)
class ExplorerRequest:
    """Input of the UI layer.

    Attributes:
        parameter_ids (Sequence[ParameterId | str]): Parameters to plot.
        location (Location): Clicked map point.
        reference_date (date | str | None): Date to center the window on.
        start_date (date | str | None): Explicit window start.
        end_date (date | str | None): Explicit window end.
        unit_system (str): "metric" or "imperial".
    """

    parameter_ids: Sequence[ParameterId | str]
    location: Location
    reference_date: date | str | None = None
    start_date: date | str | None = None
    end_date: date | str | None = None
    unit_system: str = METRIC


@dataclass(frozen=True)
class ExplorerResponse:
    """Output for the UI layer, expressed in the requested unit system.

    Attributes:
        window (DateWindow): Effective window.
        table (AggregatedTable): Converted outer-joined table.
        bounds (Mapping[ParameterId, Bounds]): Converted bounds.
        origins (Mapping[ParameterId, Origin]): Provenance per parameter.
        units (Mapping[ParameterId, str]): Unit label per parameter.
        unit_system (str): Unit system of all values.
    """

    window: DateWindow
    table: AggregatedTable
    bounds: Mapping[ParameterId, Bounds]
    origins: Mapping[ParameterId, Origin]
    units: Mapping[ParameterId, str] = field(default_factory=dict)
    unit_system: str = METRIC


class SeriesExplorer:
    """Entry point of the engine for the UI layer.

    Resolves the request window, aggregates all parameters and applies unit
    conversion on read. The aggregation only fails when the window or location is
    invalid or the unit system is unsupported; provider failures show up in origins.
    """

    def __init__(
        self,
        config: ExplorerConfig,
        provider: ProviderAdapter,
        resolver: Optional[DateWindowResolver] = None,
        generator: Optional[SyntheticSeriesGenerator] = None,
    ) -> None:
        self.config = config
        self.resolver = resolver or DateWindowResolver(config)
        self.aggregator = MultiSeriesAggregator(
            provider=provider,
            generator=generator,
            timeout=config.provider_timeout,
        )

        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

    async def explore(self, request: ExplorerRequest) -> ExplorerResponse:
        """Produce the converted table, bounds and origins for a request.

        Args:
            request (ExplorerRequest): UI request.

        Raises:
            InvalidDateError: When the window inputs are invalid.
            UnsupportedUnitError: When the unit system is unknown.
            ValueError: When a parameter id is unknown.

        Returns:
            ExplorerResponse: Values expressed in request.unit_system.
        """
        window = self.resolver.resolve(
            reference_date=request.reference_date,
            start=request.start_date,
            end=request.end_date,
        )
        if request.unit_system not in UNIT_SYSTEMS:
            raise UnsupportedUnitError(
                f"Unknown unit system {request.unit_system!r}. Expected one of: {list(UNIT_SYSTEMS)}"
            )

        parameter_ids = request.parameter_ids or self.config.parameters
        units = {
            parameter: unit_label(parameter, request.unit_system)
            for parameter in parse_parameter_ids(parameter_ids)
        }

        result = await self.aggregator.aggregate(parameter_ids, request.location, window)

        return convert_result(result, request.unit_system, units)


def convert_result(
    result: AggregationResult,
    unit_system: str,
    units: Optional[Mapping[ParameterId, str]] = None,
) -> ExplorerResponse:
    """Express an aggregation result in another unit system.

    All supported conversions are increasing linear functions, so converted bounds
    are the bounds of the converted values.
    """
    table = result.table
    rows = tuple(
        TableRow(
            timestamp=row.timestamp,
            values={
                parameter: convert_optional(parameter, row.get(parameter), METRIC, unit_system)
                for parameter in table.parameter_ids
            },
        )
        for row in table.rows
    )
    bounds = {
        parameter: Bounds(
            min=convert_optional(parameter, bound.min, METRIC, unit_system),
            max=convert_optional(parameter, bound.max, METRIC, unit_system),
        )
        for parameter, bound in result.bounds.items()
    }
    if units is None:
        units = {parameter: unit_label(parameter, unit_system) for parameter in table.parameter_ids}

    return ExplorerResponse(
        window=result.window,
        table=AggregatedTable(parameter_ids=table.parameter_ids, rows=rows),
        bounds=bounds,
        origins=dict(result.origins),
        units=dict(units),
        unit_system=unit_system,
    )
