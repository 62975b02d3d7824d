"""Weather Provider Adapters for Daily Weather Records

This module defines the boundary between the time-series engine and upstream weather
data providers, and ships the Open-Meteo implementation used in production.

Core Components:

Provider Interface:
- ProviderAdapter: Abstract base class returning raw daily records for a location
  and a date window. Implementations raise ProviderError on any transport, status
  or payload failure and return partial coverage as-is.

Open-Meteo Implementation:
- OpenMeteoProvider: Requests all supported daily variables in one call per endpoint
- Automatic routing between the Archive API (verified history) and the Forecast API
  (recent days and predictions) based on the archive delay cutoff
- Cached HTTP sessions with automatic retry logic
- Flatbuffer response processing to pandas DataFrames and raw records

Raw Daily Record Format:
    {
        "date": datetime.date,
        "temperature_2m_mean": float,
        "apparent_temperature_mean": float,
        "precipitation_sum": float,
        "relative_humidity_2m_mean": float,
        "wind_speed_10m_mean": float,
        "cloud_cover_mean": float,
        "uv_index_max": float,
    }

Values the provider could not deliver are NaN or missing keys; the engine treats
both as absent.

API Endpoints Supported:

OpenMeteo Archive API:
- Endpoint: https://archive-api.open-meteo.com/v1/archive
- Purpose: Historical weather observations (2+ day delay)
- Note: uv_index_max is not archived and is only requested from the Forecast API

OpenMeteo Forecast API:
- Endpoint: https://api.open-meteo.com/v1/forecast
- Purpose: Recent days and weather predictions (up to 16 days ahead)

Dependencies:
- openmeteo_requests: Official OpenMeteo SDK for API communication
- openmeteo_sdk: Response parsing and data extraction utilities
- pandas: Temporal operations on the daily time axis
- requests_cache: HTTP caching for performance optimization
- retry_requests: Automatic retry logic for resilient operations
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import openmeteo_requests
import pandas as pd
import requests
import requests_cache
from openmeteo_sdk.WeatherApiResponse import WeatherApiResponse
from retry_requests import retry

from explorer_config import ExplorerConfig
from series_models import PARAMETERS, DateWindow, Location, ParameterId, ProviderError

CACHE_PATH = "/tmp/.cache"

Record = Dict[str, Any]


class ProviderAdapter(ABC):
    """Abstract boundary to an upstream provider of daily weather records.

    Attributes:
        name (str): Provider name reported by health checks.
        parameter_scoped (bool): True when one call only returns a single parameter.
            The engine then calls fetch_daily once per parameter instead of once
            per request.
    """

    name = "provider"
    parameter_scoped = False

    @abstractmethod
    def fetch_daily(
        self,
        location: Location,
        window: DateWindow,
        parameter_id: Optional[ParameterId] = None,
    ) -> List[Record]:
        """Retrieve raw daily records for a location and window.

        Args:
            location (Location): Location to query.
            window (DateWindow): Inclusive window to cover.
            parameter_id (Optional[ParameterId]): Parameter to fetch. Only meaningful
                for parameter scoped providers.

        Raises:
            ProviderError: On any transport error, non-2xx status or malformed payload.

        Returns:
            List[Record]: Daily records ordered by date. May cover fewer days than
                the window.
        """
        pass


class OpenMeteoProvider(ProviderAdapter):
    """Open-Meteo provider returning all supported daily variables per call.

    Request Strategy:
        The window is split at the archive cutoff (today - history_delay_days):
        - Dates up to the cutoff: Archive API
        - Dates after the cutoff: Forecast API
        A window on one side of the cutoff costs a single request.

    Session Configuration:
        - Cached sessions expiring after config.cache_expire_after seconds
        - Automatic retry with exponential backoff (config.retries, config.backoff_factor)
        - Per-request timeout of config.request_timeout seconds

    Attributes:
        ARCHIVE_URL (str): OpenMeteo Archive API endpoint URL
        FORECAST_URL (str): OpenMeteo Forecast API endpoint URL
        ARCHIVE_UNSUPPORTED (Tuple[str, ...]): Daily fields the Archive API does not serve

    Example:
        provider = OpenMeteoProvider(ExplorerConfig(create_from_file=True))
        records = provider.fetch_daily(
            Location(latitude=51.505, longitude=-0.09),
            DateWindow(start=date(2024, 6, 12), end=date(2024, 6, 18)),
        )
    """

    name = "open-meteo"

    ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
    FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
    ARCHIVE_UNSUPPORTED = ("uv_index_max",)

    def __init__(
        self,
        config: ExplorerConfig,
        client: Optional[openmeteo_requests.Client] = None,
        today: Callable[[], date] = date.today,
    ):
        """Initialize OpenMeteoProvider with configuration and HTTP client.

        Args:
            config (ExplorerConfig): Configuration with timeout, retry and cache settings.
            client (Optional[openmeteo_requests.Client]): Preconfigured client. A client
                over a cached, retrying session is built when omitted.
            today (Callable[[], date]): Source of the current date for cutoff routing.
        """
        self.config = config
        self.client = client or openmeteo_requests.Client(self.__build_session(config))
        self.__today = today
        self.metrics = [PARAMETERS[parameter].field for parameter in ParameterId]

        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def __build_session(self, config: ExplorerConfig) -> requests.Session:
        return retry(
            requests_cache.CachedSession(CACHE_PATH, expire_after=config.cache_expire_after),
            retries=config.retries,
            backoff_factor=config.backoff_factor,
        )

    @property
    def history_cutoff(self) -> date:
        """Latest date served by the Archive API."""
        return self.__today() - timedelta(days=self.config.history_delay_days)

    def split_window(
        self, window: DateWindow
    ) -> Tuple[Optional[DateWindow], Optional[DateWindow]]:
        """Split a window into its archive and forecast parts.

        Args:
            window (DateWindow): Requested window.

        Returns:
            Tuple[Optional[DateWindow], Optional[DateWindow]]: (archive_window, forecast_window).
                None values indicate no request is needed for that endpoint.
        """
        cutoff = self.history_cutoff

        if window.end <= cutoff:
            return window, None
        if window.start > cutoff:
            return None, window
        return (
            DateWindow(start=window.start, end=cutoff),
            DateWindow(start=cutoff + timedelta(days=1), end=window.end),
        )

    def fetch_daily(
        self,
        location: Location,
        window: DateWindow,
        parameter_id: Optional[ParameterId] = None,
    ) -> List[Record]:
        archive_window, forecast_window = self.split_window(window)

        records: List[Record] = []
        if archive_window is not None:
            records.extend(
                self.get_data(
                    OpenMeteoProvider.ARCHIVE_URL,
                    location,
                    archive_window,
                    [
                        metric
                        for metric in self.metrics
                        if metric not in OpenMeteoProvider.ARCHIVE_UNSUPPORTED
                    ],
                )
            )
        if forecast_window is not None:
            records.extend(
                self.get_data(
                    OpenMeteoProvider.FORECAST_URL,
                    location,
                    forecast_window,
                    self.metrics,
                )
            )

        if not records:
            raise ProviderError("missing daily data")

        self.logger.info(
            f"Received {len(records)} of {window.days} daily records for Lat.: {location.latitude}° (N), Lon.: {location.longitude}° (E)"
        )
        return records

    def get_data(
        self,
        url: str,
        location: Location,
        window: DateWindow,
        metrics: List[str],
    ) -> List[Record]:
        """Request one endpoint and convert the response into raw records.

        Args:
            url (str): OpenMeteo API endpoint URL.
            location (Location): Location to query.
            window (DateWindow): Window to request from this endpoint.
            metrics (List[str]): Daily variables to request, in response order.

        Raises:
            ProviderError: When the request fails or the payload is malformed.

        Returns:
            List[Record]: Raw daily records of the endpoint.
        """
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "start_date": window.start.isoformat(),
            "end_date": window.end.isoformat(),
            "daily": metrics,
            "timezone": "GMT",
        }

        self.logger.info(
            f"Retrieving {window.start} - {window.end} from {url} for Lat.: {location.latitude}° (N), Lon.: {location.longitude}° (E)"
        )

        try:
            responses = self.client.weather_api(
                url, params=params, timeout=self.config.request_timeout
            )
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise ProviderError(f"request to {url} failed", status=status) from exc
        except requests.RequestException as exc:
            raise ProviderError(f"request to {url} failed: {exc}") from exc
        except Exception as exc:
            self.logger.exception(f"Open-Meteo request to {url} failed")
            raise ProviderError(f"request to {url} failed: {exc}") from exc

        if not responses:
            raise ProviderError(f"empty response from {url}")

        data = self.process_response(responses[0], metrics)

        return data.to_dict(orient="records")

    def process_response(
        self, response: WeatherApiResponse, metrics: List[str]
    ) -> pd.DataFrame:
        """Convert an OpenMeteo API response to a daily DataFrame.

        Args:
            response (WeatherApiResponse): Single API response object.
            metrics (List[str]): Requested daily variables in request order.

        Raises:
            ProviderError: When the daily block is missing or does not contain
                one variable per requested metric.

        Returns:
            pd.DataFrame: One row per day with a 'date' column of datetime.date
                objects and one column per metric.
        """
        try:
            daily = response.Daily()
            if daily is None:
                raise ProviderError("missing daily data")

            if daily.VariablesLength() != len(metrics):
                raise ProviderError(
                    f"expected {len(metrics)} daily variables, got {daily.VariablesLength()}"
                )

            offset = response.UtcOffsetSeconds()
            daily_data: Dict[str, Any] = {
                "date": pd.date_range(
                    start=pd.to_datetime(daily.Time() + offset, unit="s"),
                    end=pd.to_datetime(daily.TimeEnd() + offset, unit="s"),
                    freq=pd.Timedelta(seconds=daily.Interval()),
                    inclusive="left",
                ).date
            }

            for idx, variable_name in enumerate(metrics):
                variable = daily.Variables(idx)
                if variable is None:
                    raise ProviderError(f"missing daily variable {variable_name}")
                daily_data[variable_name] = variable.ValuesAsNumpy().tolist()

            data = pd.DataFrame(daily_data)
        except ProviderError:
            raise
        except Exception as exc:
            self.logger.exception("Unable to process Open-Meteo response")
            raise ProviderError(f"malformed response: {exc}") from exc

        return data.drop_duplicates(subset="date", keep="last")
