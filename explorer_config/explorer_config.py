"""Weather Explorer Configuration

This module provides the configuration object shared by the time-series engine,
the Open-Meteo provider client and the frontend API. It supports initialization
from a JSON configuration file, from kwargs, or from a file with selective kwargs
overrides.

Configuration File Schema:
    {
        "max_span_days": int,
        "default_forward_span_days": int,
        "half_span_days": int,
        "provider_timeout": float,
        "request_timeout": float,
        "history_delay_days": int,
        "cache_expire_after": int,
        "retries": int,
        "backoff_factor": float,
        "parameters": ["temperature", "precipitation", ...],
        "unit_system": "metric" | "imperial"
    }

Usage Patterns:

    From the default configuration file:\n
        config = ExplorerConfig(create_from_file=True)

    From file with overrides:\n
        config = ExplorerConfig(
            create_from_file=True,
            config_file="/path/to/config.json",
            kwargs={"max_span_days": 14}
        )

    From kwargs only:\n
        config = ExplorerConfig(
            create_from_file=False,
            kwargs={"half_span_days": 2, "provider_timeout": 5.0}
        )
"""

import json
import os
from dataclasses import InitVar, dataclass, field
from typing import Any, Dict, List

from series_models import ParameterId
from unit_converter import UNIT_SYSTEMS

DEFAULTS: Dict[str, Any] = {
    "max_span_days": 21,
    "default_forward_span_days": 10,
    "half_span_days": 3,
    "provider_timeout": 15.0,
    "request_timeout": 10.0,
    "history_delay_days": 2,
    "cache_expire_after": 86399,
    "retries": 2,
    "backoff_factor": 0.5,
    "parameters": [parameter.value for parameter in ParameterId],
    "unit_system": "metric",
}


@dataclass
class ExplorerConfig:
    """Configuration class for the weather explorer engine and provider client.

    Window Policy:
        max_span_days (int): Longest allowed distance between window start and end.
            Longer explicit windows are clamped by truncating the end.
        default_forward_span_days (int): Span used when only one window bound or
            neither bound nor a reference date is given.
        half_span_days (int): Days on each side of a reference date.

    Provider Policy:
        provider_timeout (float): Wall-clock seconds one upstream call may take before
            it is treated as a provider failure.
        request_timeout (float): Seconds passed to the HTTP session per request.
        history_delay_days (int): Days between today and the newest archived date.
        cache_expire_after (int): Seconds cached HTTP responses stay valid.
        retries (int): HTTP retries per request.
        backoff_factor (float): Exponential backoff factor between retries.

    Presentation:
        parameters (List[str]): Parameter ids requested when the caller names none.
        unit_system (str): Default unit system, "metric" or "imperial".

    Missing keys fall back to DEFAULTS, so a configuration file only needs to list
    the values it changes.

    Example:
        config = ExplorerConfig(
            create_from_file=False,
            kwargs={"max_span_days": 14, "unit_system": "imperial"}
        )
    """

    max_span_days: int = field(init=False)
    default_forward_span_days: int = field(init=False)
    half_span_days: int = field(init=False)
    provider_timeout: float = field(init=False)
    request_timeout: float = field(init=False)
    history_delay_days: int = field(init=False)
    cache_expire_after: int = field(init=False)
    retries: int = field(init=False)
    backoff_factor: float = field(init=False)
    parameters: List[str] = field(init=False)
    unit_system: str = field(init=False)
    create_from_file: InitVar[bool] = field(default=False)
    config_file: InitVar[str | None] = field(default=None)
    kwargs: InitVar[Dict[str, Any] | None] = field(default=None)

    def __post_init__(
        self,
        create_from_file: bool,
        config_file: str | None,
        kwargs: Dict[str, Any] | None,
    ):
        """Initialize ExplorerConfig from file or kwargs with validation.

        Args:
            create_from_file (bool): Whether to load base configuration from file.
            config_file (str | None): Path to JSON configuration file. If None and
                create_from_file=True, uses default path: {cwd}/config/{CONFIG_FILE env var or config.json}
            kwargs (Dict[str, Any] | None): Direct parameter values or overrides.
                Required when create_from_file=False.

        Raises:
            ValueError: When create_from_file=False but kwargs is None
            ValueError: When parameter validation fails
        """
        if create_from_file:
            if not config_file:
                config_file = os.path.join(
                    os.getcwd(),
                    "config",
                    os.getenv("CONFIG_FILE", "config.json"),
                )

            config = {**DEFAULTS, **self.__get_config(config_file)}

            self.__apply(config)

            if kwargs:
                self.__overwrite_kwargs(kwargs)

        else:
            if kwargs is not None:
                self.__apply({**DEFAULTS, **kwargs})
            else:
                raise ValueError("Kwargs are required when create_from_file=False.")

    def __get_config(self, config_file: str) -> Dict[str, Any]:
        """Load and parse JSON configuration file.

        Args:
            config_file (str): Absolute or relative path to the JSON configuration file.

        Returns:
            Dict[str, Any]: Parsed configuration dictionary.
        """
        with open(file=config_file, mode="r") as file:
            config = json.load(fp=file)

        if not isinstance(config, dict):
            raise ValueError(
                f"Configuration file {config_file} must contain a JSON object. Got {type(config)} instead."
            )

        return config

    def __apply(self, config: Dict[str, Any]) -> None:
        self.__set_int("max_span_days", config.get("max_span_days"), minimum=1)
        self.__set_int(
            "default_forward_span_days",
            config.get("default_forward_span_days"),
            minimum=1,
        )
        self.__set_int("half_span_days", config.get("half_span_days"), minimum=0)
        self.__set_float("provider_timeout", config.get("provider_timeout"), positive=True)
        self.__set_float("request_timeout", config.get("request_timeout"), positive=True)
        self.__set_int("history_delay_days", config.get("history_delay_days"), minimum=0)
        self.__set_int("cache_expire_after", config.get("cache_expire_after"), minimum=0)
        self.__set_int("retries", config.get("retries"), minimum=0)
        self.__set_float("backoff_factor", config.get("backoff_factor"), positive=False)
        self.__set_parameters(config.get("parameters"))
        self.__set_unit_system(config.get("unit_system"))

    def __set_int(self, name: str, value: Any, minimum: int) -> None:
        """Validate and set an integer attribute.

        Raises:
            ValueError: When value is not an integer or below minimum.
        """
        if isinstance(value, int) and not isinstance(value, bool):
            if value >= minimum:
                setattr(self, name, value)
            else:
                raise ValueError(f"Parameter {name} must be >={minimum}. Got {value}")
        else:
            raise ValueError(
                f"Parameter {name} expected {int} Received {type(value)} instead."
            )

    def __set_float(self, name: str, value: Any, positive: bool) -> None:
        """Validate and set a float attribute. Integers are accepted and widened.

        Raises:
            ValueError: When value is not numeric, negative, or zero while positive=True.
        """
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if value > 0 or (not positive and value == 0):
                setattr(self, name, float(value))
            else:
                raise ValueError(
                    f"Parameter {name} must be {'>0' if positive else '>=0'}. Got {value}"
                )
        else:
            raise ValueError(
                f"Parameter {name} expected {float} Received {type(value)} instead."
            )

    def __set_parameters(self, parameters: Any) -> None:
        """Validate and set the default parameter list.

        Raises:
            ValueError: When parameters is not a list or names an unknown parameter.
        """
        if isinstance(parameters, list):
            self.parameters = [ParameterId.parse(parameter).value for parameter in parameters]
        else:
            raise ValueError(
                f"Parameter parameters expected {list} Received {type(parameters)} instead."
            )

    def __set_unit_system(self, unit_system: Any) -> None:
        if unit_system in UNIT_SYSTEMS:
            self.unit_system = unit_system
        else:
            raise ValueError(
                f"Parameter unit_system must be one of {list(UNIT_SYSTEMS)}. Got {unit_system!r}"
            )

    def __overwrite_kwargs(self, kwargs: Dict[str, Any]) -> None:
        """Override configuration file parameters with kwargs values.

        Only keys present in kwargs are updated.
        """
        merged = {key: getattr(self, key) for key in DEFAULTS}
        merged.update({key: value for key, value in kwargs.items() if key in DEFAULTS})
        self.__apply(merged)
