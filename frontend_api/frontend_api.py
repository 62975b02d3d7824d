"""
Weather Explorer Frontend API

A RESTful FastAPI application exposing the weather time-series engine to the map
explorer UI. A click on the map results in one request that returns every selected
weather parameter as a timestamp-aligned table, together with per-parameter
normalization bounds and data provenance.

Features:
    - Health check endpoint for monitoring
    - Parameter discovery with display names and units for both unit systems
    - Multi-parameter daily series for a location and a date window
    - Window resolution from a reference date or explicit start/end dates
    - Unit conversion to metric or imperial display units
    - Optional 0-1 normalization of all series using their bounds
    - Provenance reporting per parameter (upstream or synthetic)

Endpoints:
    GET /health - Service health status
    GET /parameters - Available weather parameters
    GET /series/{latitude}/{longitude}/{parameters} - Daily series table

Query Parameters of /series:
    reference_date (YYYY-MM-DD): Center of a +/- half-span window
    start_date, end_date (YYYY-MM-DD): Explicit window bounds
    unit_system (metric | imperial): Display unit system
    normalize (bool): Scale every series onto 0-1 using its bounds

Dependencies:
    - FastAPI: Web framework for building APIs
    - Pydantic: Data validation and serialization
    - series_engine: Aggregation and synthesis engine
    - weather_provider: Open-Meteo provider adapter

Configuration:
    - CONFIG_FILE: Name of the configuration file inside {cwd}/config
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from explorer_config import ExplorerConfig
from series_engine import ExplorerRequest, ExplorerResponse, SeriesExplorer
from series_models import (
    PARAMETERS,
    InvalidDateError,
    InvalidLocationError,
    Location,
    ParameterId,
    UnsupportedUnitError,
    parse_parameter_ids,
)
from unit_converter import IMPERIAL, METRIC, unit_label
from weather_provider import OpenMeteoProvider

ALL_PARAMETERS = "all"


class WindowResponse(BaseModel):
    start: date
    end: date
    days: int


class BoundsResponse(BaseModel):
    min: float
    max: float


class RowResponse(BaseModel):
    timestamp: date
    values: Dict[str, Optional[float]]


class SeriesResponse(BaseModel):
    latitude: float
    longitude: float
    window: WindowResponse
    unit_system: str
    parameters: List[str]
    units: Dict[str, str]
    origins: Dict[str, str]
    bounds: Dict[str, BoundsResponse]
    normalized: bool
    table: List[RowResponse]


class ParameterResponse(BaseModel):
    id: str
    name: str
    unit: str
    imperial_unit: str


class ParametersResponse(BaseModel):
    parameters: List[ParameterResponse]


class HealthResponse(BaseModel):
    status: str
    provider: str
    message: Optional[str] = None


explorer: Optional[SeriesExplorer] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan definition of FastAPI app.

    - Builds the explorer with the Open-Meteo provider on startup, unless one was
      installed beforehand.

    Args:
        app (FastAPI): FastAPI instance.
    """
    global explorer
    if explorer is None:
        config = ExplorerConfig(create_from_file=True)
        explorer = SeriesExplorer(config=config, provider=OpenMeteoProvider(config))
    yield


app = FastAPI(
    title="Weather Explorer API",
    description="RESTful API serving aligned multi-parameter weather series for the map explorer",
    version="1.0.0",
    lifespan=lifespan,
)


def __get_explorer() -> SeriesExplorer:
    if explorer is None:
        raise HTTPException(status_code=503, detail="Explorer not initialized")
    return explorer


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint reporting the configured provider.

    Raises:
        HTTPException: Status 503 when the explorer has not been initialized.

    Returns:
        HealthResponse: HealthResponse object.
    """
    current = __get_explorer()
    return HealthResponse(
        status="healthy",
        provider=current.aggregator.provider.name,
        message="Weather explorer is ready",
    )


@app.get("/parameters", response_model=ParametersResponse)
async def get_parameters() -> ParametersResponse:
    """List all weather parameters with display names and units.

    Returns:
        ParametersResponse: One entry per parameter, e.g.
            {id: "wind-speed", name: "Wind Speed", unit: "km/h", imperial_unit: "mph"}
    """
    return ParametersResponse(
        parameters=[
            ParameterResponse(
                id=parameter.value,
                name=spec.name,
                unit=unit_label(parameter, METRIC),
                imperial_unit=unit_label(parameter, IMPERIAL),
            )
            for parameter, spec in PARAMETERS.items()
        ]
    )


@app.get("/series/{latitude}/{longitude}/{parameters}", response_model=SeriesResponse)
async def get_series(
    latitude: float,
    longitude: float,
    parameters: str,
    reference_date: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    unit_system: str = METRIC,
    normalize: bool = False,
) -> SeriesResponse:
    """Get the aligned daily series of several parameters for a location.

    Args:
        latitude (float): Latitude
        longitude (float): Longitude
        parameters (str): Comma-separated parameter ids or 'all'
        reference_date (Optional[str]): Window center (YYYY-MM-DD)
        start_date (Optional[str]): Window start (YYYY-MM-DD)
        end_date (Optional[str]): Window end (YYYY-MM-DD)
        unit_system (str): 'metric' or 'imperial'
        normalize (bool): Scale series onto 0-1 using their bounds

    Raises:
        HTTPException: Status 400 when dates, location, parameters or unit system are invalid.
        HTTPException: Status 500 when the series cannot be produced.

    Returns:
        SeriesResponse: Window, table, bounds, origins and units.
    """
    current = __get_explorer()

    try:
        request = ExplorerRequest(
            parameter_ids=__parse_parameters(parameters),
            location=Location(latitude=latitude, longitude=longitude),
            reference_date=reference_date,
            start_date=start_date,
            end_date=end_date,
            unit_system=unit_system,
        )

        response = await current.explore(request)

        return __build_response_body(request, response, normalize)

    except HTTPException:
        raise
    except (InvalidDateError, InvalidLocationError, UnsupportedUnitError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error retrieving series: {e}")


def __parse_parameters(parameters: str) -> List[ParameterId]:
    """Parse the parameters path segment.

    Args:
        parameters (str): Comma-separated parameter ids or "all".

    Raises:
        HTTPException: Status 400 when a parameter id is unknown or none is given.

    Returns:
        List[ParameterId]: Requested parameters without duplicates.
    """
    if parameters.strip() == ALL_PARAMETERS:
        return list(ParameterId)

    names = [name.strip() for name in parameters.split(",") if name.strip()]
    if not names:
        raise HTTPException(
            status_code=400,
            detail=f"Request requires at least one parameter.\nExpected: comma-separated ids of {[p.value for p in ParameterId]} or '{ALL_PARAMETERS}'\nGot {parameters} instead",
        )

    try:
        return parse_parameter_ids(names)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def __build_response_body(
    request: ExplorerRequest, response: ExplorerResponse, normalize: bool
) -> SeriesResponse:
    """Map an ExplorerResponse onto the response model."""
    table = response.table.normalized(response.bounds) if normalize else response.table

    return SeriesResponse(
        latitude=request.location.latitude,
        longitude=request.location.longitude,
        window=WindowResponse(
            start=response.window.start,
            end=response.window.end,
            days=response.window.days,
        ),
        unit_system=response.unit_system,
        parameters=[parameter.value for parameter in table.parameter_ids],
        units={parameter.value: unit for parameter, unit in response.units.items()},
        origins={parameter.value: origin.value for parameter, origin in response.origins.items()},
        bounds={
            parameter.value: BoundsResponse(min=bound.min, max=bound.max)
            for parameter, bound in response.bounds.items()
        },
        normalized=normalize,
        table=[
            RowResponse(
                timestamp=row.timestamp,
                values={parameter.value: row.get(parameter) for parameter in table.parameter_ids},
            )
            for row in table.rows
        ],
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8080)
