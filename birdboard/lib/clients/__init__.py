from .birdweather import (
    BirdWeatherClient,
    BirdWeatherClientError,
    build_birdweather_client,
)

__all__ = [
    "BirdWeatherClient",
    "BirdWeatherClientError",
    "build_birdweather_client",
]
