"""
Swap Aggregator API Client

Async REST client for a swap router exposing GET /find_routes.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ...config import config as global_config
from ...errors import AggregatorError, ConfigurationError
from ...types import SwapResult

logger = logging.getLogger(__name__)

SUCCESS_CODE = 200


class AggregatorAPI:
    """
    Aggregator REST API client

    Implements QuoteProvider. Every call is a single request; retries are the
    caller's job (see infra.retry.execute_with_retry).

    Usage:
        async with AggregatorAPI() as api:
            quote = await api.find_route(coin_a, coin_b, 1_000_000)
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        depth: int = None,
        providers: Optional[List[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize aggregator API client

        Args:
            base_url: Router base URL (default from config, required)
            timeout: Request timeout in seconds (default from config)
            depth: Maximum route depth (default from config)
            providers: Liquidity providers to route through (default from config)
            transport: Custom httpx transport

        Raises:
            ConfigurationError: no base URL given or configured
        """
        self._base_url = (base_url if base_url is not None else global_config.aggregator.base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else global_config.aggregator.timeout
        self._depth = depth if depth is not None else global_config.aggregator.depth
        self._providers = providers if providers is not None else global_config.aggregator.providers
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        if not self._base_url:
            raise ConfigurationError.missing("AGGREGATOR_URL")

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/find_routes"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    def _build_params(self, from_token: str, to_token: str, amount: int) -> Dict[str, Any]:
        params = {
            "from": from_token,
            "target": to_token,
            "amount": str(amount),
            "by_amount_in": "true",
            "depth": self._depth,
        }
        if self._providers:
            params["providers"] = ",".join(self._providers)
        return params

    async def find_route(self, from_token: str, to_token: str, amount: int) -> SwapResult:
        """
        Quote an exact-input swap

        Args:
            from_token: Input coin type
            to_token: Output coin type
            amount: Input amount in base units

        Returns:
            SwapResult with the raw route data as route_obj

        Raises:
            AggregatorError: timeout, HTTP failure, API error or no route
        """
        client = self._get_client()
        params = self._build_params(from_token, to_token, amount)

        try:
            response = await client.get(self.endpoint, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"Aggregator request timed out: {from_token} -> {to_token}, amount={amount}")
            raise AggregatorError.timeout(self.endpoint, self._timeout, e)
        except httpx.HTTPError as e:
            logger.error(f"Aggregator request failed: {e}")
            raise AggregatorError(
                f"Aggregator request failed: {e}",
                recoverable=True,
                original_error=e,
                endpoint=self.endpoint,
            )

        if response.status_code != 200:
            logger.warning(f"Aggregator returned HTTP {response.status_code}")
            raise AggregatorError.http_error(response.status_code, response.text, self.endpoint)

        try:
            payload = response.json()
        except ValueError as e:
            raise AggregatorError.api_error(f"invalid JSON response: {e}", self.endpoint)

        code = payload.get("code", SUCCESS_CODE)
        if code != SUCCESS_CODE:
            raise AggregatorError.api_error(f"{payload.get('msg', 'unknown error')} (code {code})", self.endpoint)

        data = payload.get("data") or {}
        paths = data.get("paths") or []
        if not paths:
            raise AggregatorError.no_route(from_token, to_token, amount)

        try:
            swap_in_amount = int(data["amount_in"])
            swap_out_amount = int(data["amount_out"])
        except (KeyError, TypeError, ValueError) as e:
            raise AggregatorError.api_error(f"malformed route data: {e}", self.endpoint)

        logger.debug(
            f"Route {from_token} -> {to_token}: in={swap_in_amount}, out={swap_out_amount}, paths={len(paths)}"
        )
        return SwapResult(
            swap_in_amount=swap_in_amount,
            swap_out_amount=swap_out_amount,
            route_obj=data,
        )

    async def aclose(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
