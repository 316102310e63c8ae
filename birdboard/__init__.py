"""Station dashboard backend for the BirdWeather detection service."""

__version__ = "0.1.0"
