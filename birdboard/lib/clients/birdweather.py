from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

from birdboard.lib.config import UpstreamConfig
from birdboard.lib.utils.retry import with_retry

__all__ = [
    "BirdWeatherClient",
    "BirdWeatherClientError",
    "build_birdweather_client",
]


DEFAULT_BIRDWEATHER_ENDPOINT = "https://app.birdweather.com/graphql"


class BirdWeatherClientError(RuntimeError):
    """Raised when a BirdWeather GraphQL request fails."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


logger = logging.getLogger("birdboard.clients.birdweather")


def _default_headers(user_agent: Optional[str]) -> Dict[str, str]:
    return {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": user_agent
        or os.getenv("BIRDWEATHER_USER_AGENT")
        or "birdboard/0.1",
    }


def _operation_name(query: str) -> str:
    tokens = query.strip().split(None, 2)
    if len(tokens) >= 2 and tokens[0] in ("query", "mutation"):
        return tokens[1].split("(", 1)[0]
    return "anonymous"


class BirdWeatherClient:
    """
    Thin wrapper that posts GraphQL documents to the public BirdWeather API.
    """

    def __init__(
        self,
        *,
        endpoint: str = DEFAULT_BIRDWEATHER_ENDPOINT,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        attempts: int = 2,
        base_delay: float = 0.5,
    ) -> None:
        self._endpoint = endpoint
        self._client = httpx.Client(
            timeout=timeout,
            headers=_default_headers(user_agent),
            transport=transport,
        )
        self._attempts = max(1, attempts)
        self._base_delay = base_delay

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BirdWeatherClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a query and return its ``data`` object, raising on any failure."""
        if not query or not query.strip():
            raise BirdWeatherClientError("GraphQL query must be a non-empty string")

        operation = _operation_name(query)
        body = {"query": query, "variables": variables or {}}

        def _call() -> Dict[str, Any]:
            start = time.perf_counter()
            try:
                response = self._client.post(self._endpoint, json=body)
            except httpx.TransportError as exc:
                raise BirdWeatherClientError(
                    f"BirdWeather {operation} transport error: {exc}",
                    retryable=True,
                ) from exc
            duration = time.perf_counter() - start
            status = response.status_code
            if status >= 500:
                raise BirdWeatherClientError(
                    f"BirdWeather {operation} received {status}",
                    retryable=True,
                )
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:  # noqa: BLE001
                raise BirdWeatherClientError(
                    f"BirdWeather {operation} error {exc.response.status_code}",
                    retryable=exc.response.status_code == 429,
                ) from exc

            try:
                payload = response.json()
            except json.JSONDecodeError as exc:  # noqa: BLE001
                raise BirdWeatherClientError(
                    f"Failed to decode BirdWeather {operation} response: {exc}",
                    retryable=True,
                ) from exc

            if not isinstance(payload, dict):
                raise BirdWeatherClientError(
                    f"Unexpected BirdWeather {operation} payload: expected object",
                )
            errors = payload.get("errors")
            if errors:
                first = errors[0] if isinstance(errors, list) and errors else {}
                message = first.get("message") if isinstance(first, dict) else None
                raise BirdWeatherClientError(
                    f"BirdWeather {operation} GraphQL error: {message or 'unknown error'}",
                )
            data = payload.get("data")
            if not isinstance(data, dict):
                raise BirdWeatherClientError(f"BirdWeather {operation} response missing data")

            logger.info(
                "BirdWeather request success",
                extra={
                    "event": "birdweather_request",
                    "operation": operation,
                    "status": status,
                    "duration": duration,
                },
            )
            return data

        return with_retry(
            _call,
            attempts=self._attempts,
            base_delay=self._base_delay,
            logger=logger,
            description=f"BirdWeather {operation}",
            exceptions=(BirdWeatherClientError,),
        )


def build_birdweather_client(
    config: UpstreamConfig,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> BirdWeatherClient:
    return BirdWeatherClient(
        endpoint=config.endpoint,
        timeout=config.timeout,
        user_agent=config.user_agent,
        transport=transport,
        attempts=config.attempts,
        base_delay=config.base_delay,
    )
