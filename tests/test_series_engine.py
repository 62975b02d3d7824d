"""Tests for extraction, fetching, aggregation and the explorer entry point."""

import asyncio
import math
import time
from datetime import date, timedelta

import pytest

from conftest import (
    JUNE_WINDOW,
    LONDON,
    FakeProvider,
    ScopedFakeProvider,
    make_record,
    make_records,
)
from series_engine import (
    ExplorerRequest,
    MultiSeriesAggregator,
    ParameterExtractor,
    SeriesExplorer,
    SeriesFetcher,
    merge_series,
)
from series_models import (
    InvalidDateError,
    ObservationPoint,
    Origin,
    ParameterId,
    ParameterSeries,
    UnsupportedUnitError,
)


def make_series(parameter_id, start, values, origin=Origin.UPSTREAM):
    days = [start + timedelta(days=offset) for offset in range(len(values))]
    return ParameterSeries(
        parameter_id=parameter_id,
        points=tuple(ObservationPoint(timestamp=day, value=value) for day, value in zip(days, values)),
        origin=origin,
    )


class TestParameterExtractor:
    """Test cases for raw record extraction."""

    def test_extracts_mapped_field(self):
        extractor = ParameterExtractor()
        record = make_record(date(2024, 6, 12), wind_speed_10m_mean=21.5)

        assert extractor.extract(record, ParameterId.WIND_SPEED) == 21.5
        assert extractor.extract(record, "uv-index") == 5.0

    @pytest.mark.parametrize("value", [None, "12.0", float("nan"), math.inf, True])
    def test_non_numeric_values_are_absent(self, value):
        extractor = ParameterExtractor()
        record = make_record(date(2024, 6, 12), temperature_2m_mean=value)

        assert extractor.extract(record, ParameterId.TEMPERATURE) is None

    def test_missing_field_is_absent(self):
        extractor = ParameterExtractor()

        assert extractor.extract({"date": date(2024, 6, 12)}, ParameterId.HUMIDITY) is None

    def test_zero_is_present(self):
        extractor = ParameterExtractor()
        record = make_record(date(2024, 6, 12), precipitation_sum=0.0)

        assert extractor.extract(record, ParameterId.PRECIPITATION) == 0.0

    def test_unknown_parameter_falls_back_to_temperature(self):
        extractor = ParameterExtractor()
        record = make_record(date(2024, 6, 12), temperature_2m_mean=9.5)

        assert extractor.extract(record, "snowfall") == 9.5


class TestSeriesFetcher:
    """Test cases for per-parameter fetching with fallback."""

    def test_full_coverage(self, full_provider):
        fetcher = SeriesFetcher(full_provider)

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.UPSTREAM
        assert series.values == [18.0] * 7

    def test_partial_coverage_leaves_gaps(self):
        provider = FakeProvider(records=make_records(date(2024, 6, 13), 3, temperature_2m_mean=20.0))
        fetcher = SeriesFetcher(provider)

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.UPSTREAM
        assert len(series) == 7
        assert series.values == [None, 20.0, 20.0, 20.0, None, None, None]

    def test_provider_error_falls_back_to_synthetic(self, failing_provider):
        fetcher = SeriesFetcher(failing_provider)

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.SYNTHETIC
        assert len(series) == 7
        assert all(0.0 <= value <= 35.0 for value in series.values)

    def test_empty_payload_falls_back_to_synthetic(self):
        fetcher = SeriesFetcher(FakeProvider(records=[]))

        series = asyncio.run(fetcher.fetch_series(ParameterId.HUMIDITY, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.SYNTHETIC

    def test_unexpected_exception_falls_back_to_synthetic(self):
        fetcher = SeriesFetcher(FakeProvider(error=KeyError("daily")))

        series = asyncio.run(fetcher.fetch_series(ParameterId.CLOUD_COVER, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.SYNTHETIC

    def test_timeout_falls_back_to_synthetic(self, full_provider):
        full_provider.delay = 0.5
        fetcher = SeriesFetcher(full_provider, timeout=0.05)

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.origin == Origin.SYNTHETIC

    def test_records_outside_window_and_duplicates(self):
        records = [
            make_record(date(2024, 6, 10), temperature_2m_mean=1.0),
            make_record(date(2024, 6, 12), temperature_2m_mean=2.0),
            make_record(date(2024, 6, 12), temperature_2m_mean=3.0),
            make_record(date(2024, 6, 25), temperature_2m_mean=4.0),
            {"temperature_2m_mean": 5.0},
        ]
        fetcher = SeriesFetcher(FakeProvider(records=records))

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.timestamps == JUNE_WINDOW.dates()
        assert series.values[0] == 3.0
        assert series.values[1:] == [None] * 6

    def test_iso_string_dates_are_accepted(self):
        records = [dict(make_record(date(2024, 6, 12)), date="2024-06-12")]
        fetcher = SeriesFetcher(FakeProvider(records=records))

        series = asyncio.run(fetcher.fetch_series(ParameterId.TEMPERATURE, LONDON, JUNE_WINDOW))

        assert series.values[0] == 18.0


class TestMultiSeriesAggregator:
    """Test cases for concurrent aggregation."""

    def test_single_provider_call_for_all_parameters(self, full_provider, all_parameters):
        aggregator = MultiSeriesAggregator(full_provider)

        result = asyncio.run(aggregator.aggregate(all_parameters, LONDON, JUNE_WINDOW))

        assert len(full_provider.calls) == 1
        assert len(result.table) == 7
        assert set(result.origins.values()) == {Origin.UPSTREAM}

    def test_parameter_scoped_provider_is_called_per_parameter(self):
        provider = ScopedFakeProvider(records=make_records(JUNE_WINDOW.start, JUNE_WINDOW.days))
        aggregator = MultiSeriesAggregator(provider)
        parameters = [ParameterId.TEMPERATURE, ParameterId.HUMIDITY, ParameterId.WIND_SPEED]

        result = asyncio.run(aggregator.aggregate(parameters, LONDON, JUNE_WINDOW))

        assert len(provider.calls) == 3
        assert {call[2] for call in provider.calls} == set(parameters)
        assert result.table.column(ParameterId.HUMIDITY) == [70.0] * 7

    def test_parameters_are_fetched_concurrently(self):
        delay = 0.3
        provider = ScopedFakeProvider(
            records=make_records(JUNE_WINDOW.start, JUNE_WINDOW.days), delay=delay
        )
        aggregator = MultiSeriesAggregator(provider)
        parameters = [
            ParameterId.TEMPERATURE,
            ParameterId.HUMIDITY,
            ParameterId.WIND_SPEED,
            ParameterId.CLOUD_COVER,
        ]

        started = time.perf_counter()
        result = asyncio.run(aggregator.aggregate(parameters, LONDON, JUNE_WINDOW))
        elapsed = time.perf_counter() - started

        assert len(provider.calls) == len(parameters)
        assert provider.peak_in_flight > 1
        assert elapsed < delay * len(parameters) * 0.75
        assert set(result.origins.values()) == {Origin.UPSTREAM}

    def test_every_parameter_gets_series_on_failure(self, failing_provider, all_parameters):
        aggregator = MultiSeriesAggregator(failing_provider)

        result = asyncio.run(aggregator.aggregate(all_parameters, LONDON, JUNE_WINDOW))

        assert set(result.origins) == set(all_parameters)
        assert set(result.origins.values()) == {Origin.SYNTHETIC}
        assert set(result.bounds) == set(all_parameters)

    def test_duplicate_parameters_are_dropped(self, full_provider):
        aggregator = MultiSeriesAggregator(full_provider)

        result = asyncio.run(
            aggregator.aggregate(["temperature", ParameterId.TEMPERATURE, "humidity"], LONDON, JUNE_WINDOW)
        )

        assert result.table.parameter_ids == (ParameterId.TEMPERATURE, ParameterId.HUMIDITY)

    def test_unknown_parameter_is_rejected(self, full_provider):
        aggregator = MultiSeriesAggregator(full_provider)

        with pytest.raises(ValueError):
            asyncio.run(aggregator.aggregate(["snowfall"], LONDON, JUNE_WINDOW))

    def test_bounds_ignore_absent_values(self):
        records = make_records(JUNE_WINDOW.start, JUNE_WINDOW.days)
        for index, record in enumerate(records):
            record["temperature_2m_mean"] = None if index % 2 else 10.0 + index
        aggregator = MultiSeriesAggregator(FakeProvider(records=records))

        result = asyncio.run(aggregator.aggregate([ParameterId.TEMPERATURE], LONDON, JUNE_WINDOW))

        assert result.bounds[ParameterId.TEMPERATURE].min == 10.0
        assert result.bounds[ParameterId.TEMPERATURE].max == 16.0


class TestMergeSeries:
    """Test cases for the outer join."""

    def test_union_of_timestamps(self):
        temperature = make_series(ParameterId.TEMPERATURE, date(2024, 6, 12), [1.0] * 7)
        humidity = make_series(ParameterId.HUMIDITY, date(2024, 6, 12), [50.0, 60.0, 70.0, 80.0, 90.0])

        table, bounds = merge_series(
            [ParameterId.TEMPERATURE, ParameterId.HUMIDITY],
            {ParameterId.TEMPERATURE: temperature, ParameterId.HUMIDITY: humidity},
        )

        assert len(table) == 7
        assert table.column(ParameterId.HUMIDITY)[5:] == [None, None]
        assert bounds[ParameterId.HUMIDITY].min == 50.0
        assert bounds[ParameterId.HUMIDITY].max == 90.0

    def test_shifted_series_are_sorted(self):
        first = make_series(ParameterId.TEMPERATURE, date(2024, 6, 14), [1.0, 2.0, 3.0])
        second = make_series(ParameterId.PRECIPITATION, date(2024, 6, 12), [0.0, 0.5, 1.0])

        table, _ = merge_series(
            [ParameterId.TEMPERATURE, ParameterId.PRECIPITATION],
            {ParameterId.TEMPERATURE: first, ParameterId.PRECIPITATION: second},
        )

        assert table.timestamps == [date(2024, 6, day) for day in range(12, 17)]
        assert table.column(ParameterId.TEMPERATURE) == [None, None, 1.0, 2.0, 3.0]
        assert table.column(ParameterId.PRECIPITATION) == [0.0, 0.5, 1.0, None, None]

    def test_all_absent_series_has_no_bounds(self):
        empty = make_series(ParameterId.UV_INDEX, date(2024, 6, 12), [None, None, None])
        flat = make_series(ParameterId.HUMIDITY, date(2024, 6, 12), [40.0, 40.0, 40.0])

        table, bounds = merge_series(
            [ParameterId.UV_INDEX, ParameterId.HUMIDITY],
            {ParameterId.UV_INDEX: empty, ParameterId.HUMIDITY: flat},
        )

        assert ParameterId.UV_INDEX not in bounds
        assert len(table) == 3
        assert table.normalized(bounds).column(ParameterId.HUMIDITY) == [0.5, 0.5, 0.5]
        assert table.normalized(bounds).column(ParameterId.UV_INDEX) == [None, None, None]

    def test_to_records(self):
        series = make_series(ParameterId.TEMPERATURE, date(2024, 6, 12), [1.5, None])

        table, _ = merge_series([ParameterId.TEMPERATURE], {ParameterId.TEMPERATURE: series})

        assert table.to_records() == [
            {"timestamp": "2024-06-12", "temperature": 1.5},
            {"timestamp": "2024-06-13", "temperature": None},
        ]


class TestSeriesExplorer:
    """Test cases for the UI entry point."""

    def test_imperial_conversion(self, config):
        provider = FakeProvider(
            records=make_records(
                JUNE_WINDOW.start, JUNE_WINDOW.days, temperature_2m_mean=20.0, precipitation_sum=25.4
            )
        )
        explorer = SeriesExplorer(config, provider)

        response = asyncio.run(
            explorer.explore(
                ExplorerRequest(
                    parameter_ids=["temperature", "precipitation"],
                    location=LONDON,
                    reference_date="2024-06-15",
                    unit_system="imperial",
                )
            )
        )

        assert response.window == JUNE_WINDOW
        assert response.table.column(ParameterId.TEMPERATURE) == [pytest.approx(68.0)] * 7
        assert response.table.column(ParameterId.PRECIPITATION) == [pytest.approx(1.0)] * 7
        assert response.bounds[ParameterId.TEMPERATURE].max == pytest.approx(68.0)
        assert response.units == {ParameterId.TEMPERATURE: "°F", ParameterId.PRECIPITATION: "in"}

    def test_default_parameters_from_config(self, config, full_provider):
        explorer = SeriesExplorer(config, full_provider)

        response = asyncio.run(
            explorer.explore(ExplorerRequest(parameter_ids=[], location=LONDON, reference_date="2024-06-15"))
        )

        assert len(response.table.parameter_ids) == 7
        assert response.unit_system == "metric"

    def test_invalid_window(self, config, full_provider):
        explorer = SeriesExplorer(config, full_provider)

        with pytest.raises(InvalidDateError):
            asyncio.run(
                explorer.explore(
                    ExplorerRequest(
                        parameter_ids=["temperature"],
                        location=LONDON,
                        start_date="2024-06-20",
                        end_date="2024-06-10",
                    )
                )
            )
        assert full_provider.calls == []

    def test_unknown_unit_system(self, config, full_provider):
        explorer = SeriesExplorer(config, full_provider)

        with pytest.raises(UnsupportedUnitError):
            asyncio.run(
                explorer.explore(
                    ExplorerRequest(
                        parameter_ids=["temperature"],
                        location=LONDON,
                        reference_date="2024-06-15",
                        unit_system="kelvin",
                    )
                )
            )
