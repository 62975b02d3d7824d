from .weather_provider import OpenMeteoProvider, ProviderAdapter, Record

__all__ = ["OpenMeteoProvider", "ProviderAdapter", "Record"]
