"""Async HTTP client for the online feature server.

Usage::

    async with FeatureServerClient("http://feast-example-online:80") as client:
        response = await client.get_online_features(
            OnlineFeaturesRequest(
                entities={"driver_id": [1001, 1002]},
                features=["driver_hourly_stats:conv_rate", "driver_hourly_stats:acc_rate"],
            )
        )
        rows = feature_vector(response, ["conv_rate", "acc_rate"])
        predictions = model.predict(rows)
"""

import time
from collections.abc import Sequence
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from featurestore.config import settings
from featurestore.errors import FeatureServerError, FeatureServerUnavailableError
from featurestore.serving.models import OnlineFeaturesRequest, OnlineFeaturesResponse

logger = structlog.get_logger()

ONLINE_FEATURES_PATH = "/get-online-features"
HEALTH_PATH = "/health"


class FeatureServerClient:
    """Thin client over the feature server's REST endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = (base_url or settings.feature_server_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.feature_server_timeout_seconds
        self._transport = transport
        self._headers = headers or {}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "FeatureServerClient":
        self._client = self._build_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers=self._headers,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        start = time.perf_counter()
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error("feature_server_unreachable", url=self.base_url, path=path, error=str(e))
            raise FeatureServerUnavailableError(
                f"Feature server at {self.base_url} is unreachable: {e}"
            ) from e

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.debug(
            "feature_server_request",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        if response.is_error:
            logger.warning(
                "feature_server_error_response",
                path=path,
                status_code=response.status_code,
            )
            raise FeatureServerError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def health(self) -> bool:
        """True when the server answers its health endpoint with 2xx."""
        try:
            await self._request("GET", HEALTH_PATH)
        except FeatureServerError:
            return False
        return True

    async def get_online_features(self, request: OnlineFeaturesRequest) -> OnlineFeaturesResponse:
        response = await self._request("POST", ONLINE_FEATURES_PATH, json=request.to_payload())
        try:
            parsed = OnlineFeaturesResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FeatureServerError(
                f"Malformed response from {ONLINE_FEATURES_PATH}: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if parsed.row_count != request.row_count:
            raise FeatureServerError(
                f"Requested {request.row_count} entity rows but received {parsed.row_count}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info(
            "online_features_retrieved",
            entity_count=request.row_count,
            feature_count=len(parsed.feature_names),
            missing=parsed.missing(),
        )
        return parsed


def feature_vector(response: OnlineFeaturesResponse, feature_order: Sequence[str]) -> list[list[Any]]:
    """Rows of feature values in ``feature_order``, ready for ``model.predict``.

    Raises:
        KeyError: if a requested feature is not in the response.
    """
    columns = response.to_dict()
    missing = [name for name in feature_order if name not in columns]
    if missing:
        raise KeyError(f"Features not in response: {missing}")
    return [
        [columns[name][row] for name in feature_order] for row in range(response.row_count)
    ]
