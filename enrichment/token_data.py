"""
Token Data Provider

Fetches token security data from the Birdeye API and formats it as a
short text report. Reports are cached in the key store for a few
minutes; any failure yields a fixed fallback message instead of an error.
"""
from typing import Optional

import httpx
from loguru import logger

from config import settings
from constants import ENRICHMENT_PREFIX
from repositories import KeyStore
from utils.retry import RetryConfig, with_retry


TOKEN_SECURITY_ENDPOINT = "/defi/token_security"

UNAVAILABLE_MESSAGE = "Unable to fetch token information. Please try again later."


class TokenDataProvider:
    """
    Example:
        provider = TokenDataProvider(store)
        text = await provider.fetch_info("WIF")
    """

    def __init__(
        self,
        store: KeyStore,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_config: Optional[RetryConfig] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.store = store
        self.api_key = settings.BIRDEYE_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.BIRDEYE_API_BASE).rstrip("/")
        self.cache_ttl = settings.ENRICHMENT_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl
        self._client = client
        self._fetch_security = with_retry(retry_config or RetryConfig())(self._request_security)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS)
        return self._client

    async def fetch_info(self, key: str) -> str:
        """Formatted security report for a token, or the fallback message."""
        cache_key = f"{ENRICHMENT_PREFIX}{key}"
        cached = await self.store.get(cache_key)
        if isinstance(cached, str):
            return cached

        try:
            data = await self._fetch_security(key)
        except Exception as e:
            logger.warning(f"[Enrichment] Token data unavailable for {key}: {e}")
            return UNAVAILABLE_MESSAGE

        report = self.format_report(key, data)
        await self.store.set(cache_key, report, ttl=self.cache_ttl)
        return report

    async def _request_security(self, key: str) -> dict:
        response = await self._get_client().get(
            f"{self.base_url}{TOKEN_SECURITY_ENDPOINT}",
            params={"address": key},
            headers={
                "Accept": "application/json",
                "x-chain": "solana",
                "X-API-KEY": self.api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("success") or not payload.get("data"):
            raise ValueError("No token security data available")
        return payload["data"]

    @staticmethod
    def format_report(key: str, data: dict) -> str:
        lines = [
            "**Token Security Report**",
            f"Token: {key}",
            "",
            "**Ownership Distribution:**",
            f"- Owner Balance: {data.get('ownerBalance')}",
            f"- Creator Balance: {data.get('creatorBalance')}",
            f"- Owner Percentage: {data.get('ownerPercentage')}%",
            f"- Creator Percentage: {data.get('creatorPercentage')}%",
            f"- Top 10 Holders Balance: {data.get('top10HolderBalance')}",
            f"- Top 10 Holders Percentage: {data.get('top10HolderPercent')}%",
        ]
        return "\n".join(lines)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
