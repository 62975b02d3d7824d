"""Shared fixtures and fake providers for the weather explorer tests."""

import threading
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pytest

from explorer_config import ExplorerConfig
from series_models import PARAMETERS, DateWindow, Location, ParameterId, ProviderError
from weather_provider import ProviderAdapter, Record

LONDON = Location(latitude=51.505, longitude=-0.09)
SYDNEY = Location(latitude=-33.87, longitude=151.21)
JUNE_WINDOW = DateWindow(start=date(2024, 6, 12), end=date(2024, 6, 18))


def make_record(day: date, **values: Any) -> Record:
    """Raw daily record with every field set, overridable by parameter id field name."""
    record: Dict[str, Any] = {
        "date": day,
        "temperature_2m_mean": 18.0,
        "apparent_temperature_mean": 17.0,
        "precipitation_sum": 1.2,
        "relative_humidity_2m_mean": 70.0,
        "wind_speed_10m_mean": 12.0,
        "cloud_cover_mean": 55.0,
        "uv_index_max": 5.0,
    }
    record.update(values)
    return record


def make_records(start: date, days: int, **values: Any) -> List[Record]:
    return [make_record(start + timedelta(days=offset), **values) for offset in range(days)]


class FakeProvider(ProviderAdapter):
    """Provider returning canned records, optionally failing or responding slowly."""

    name = "fake"

    def __init__(
        self,
        records: Optional[List[Record]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.records = records if records is not None else []
        self.error = error
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.__lock = threading.Lock()

    def fetch_daily(self, location, window, parameter_id=None):
        with self.__lock:
            self.calls.append((location, window, parameter_id))
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return list(self.records)
        finally:
            with self.__lock:
                self.in_flight -= 1


class ScopedFakeProvider(FakeProvider):
    """Provider that only returns one parameter per call."""

    name = "scoped-fake"
    parameter_scoped = True

    def fetch_daily(self, location, window, parameter_id=None):
        records = super().fetch_daily(location, window, parameter_id)
        field = PARAMETERS[parameter_id].field
        return [{"date": record["date"], field: record[field]} for record in records]


@pytest.fixture
def london():
    return LONDON


@pytest.fixture
def sydney():
    return SYDNEY


@pytest.fixture
def june_window():
    return JUNE_WINDOW


@pytest.fixture
def config():
    return ExplorerConfig(create_from_file=False, kwargs={"provider_timeout": 2.0})


@pytest.fixture
def full_provider():
    return FakeProvider(records=make_records(JUNE_WINDOW.start, JUNE_WINDOW.days))


@pytest.fixture
def failing_provider():
    return FakeProvider(error=ProviderError("service unavailable", status=503))


@pytest.fixture
def all_parameters():
    return list(ParameterId)
