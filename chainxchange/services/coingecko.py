import logging
from typing import Any, Optional

import httpx

from chainxchange.core.config import settings
from chainxchange.core.exceptions import EmptyResponseError, RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)


def parse_retry_after(value: Optional[str], default: float) -> float:
    """Seconds to wait from a ``retry-after`` header; ``default`` when absent or not numeric."""
    if value is None:
        return default
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    return max(seconds, 0.0)


def is_empty_payload(payload: Any) -> bool:
    return payload is None or payload == "" or payload == []


class CoinGeckoClient:
    """Issues single GET requests against CoinGecko. No retries, no queueing."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        default_retry_after: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.COINGECKO_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.COINGECKO_TIMEOUT_SECONDS
        self.default_retry_after = (
            default_retry_after if default_retry_after is not None
            else settings.COINGECKO_DEFAULT_RETRY_AFTER
        )
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": user_agent or settings.COINGECKO_USER_AGENT,
        }
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_url(self, path: str, params: Optional[dict] = None) -> str:
        url = httpx.URL(f"{self.base_url}/{path.lstrip('/')}")
        if params:
            url = url.copy_merge_params(params)
        return str(url)

    async def get(self, url: str, params: Optional[dict] = None) -> Any:
        if self._client is None:
            await self.connect()

        logger.debug(f"Fetching from CoinGecko: {url}")
        try:
            response = await self._client.get(
                url, params=params or None, headers=self.headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"CoinGecko request timed out after {self.timeout}s: {url}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Network error calling CoinGecko: {e}") from e

        if response.status_code == 429:
            retry_after = parse_retry_after(
                response.headers.get("retry-after"), self.default_retry_after
            )
            raise RateLimitedError(
                f"CoinGecko rate limit hit for {url}", retry_after=retry_after
            )

        if response.status_code >= 400:
            raise UpstreamError(
                f"CoinGecko error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.content:
            raise EmptyResponseError("Empty response from CoinGecko", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                "CoinGecko returned a non-JSON body", status_code=response.status_code
            ) from e

        if is_empty_payload(payload):
            raise EmptyResponseError("Empty response from CoinGecko", status_code=response.status_code)

        return payload
