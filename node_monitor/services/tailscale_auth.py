"""
Tailscale OAuth access tokens, cached in a key-value store.

The cached entry is ``{"accessToken": str, "expiresAt": epoch ms}`` where
``expiresAt`` already subtracts the refresh buffer, so a token is replaced
slightly before Tailscale would reject it.
"""

import asyncio
import json
from typing import Callable

import aiohttp
import structlog

from node_monitor.core.exceptions import StoreError, TokenExchangeError
from node_monitor.core.timeutils import utc_now_ms
from node_monitor.storage.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)


class TailscaleTokenProvider:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        cache: KeyValueStore,
        cache_key: str,
        expiry_buffer_seconds: int,
        session: aiohttp.ClientSession,
        api_base_url: str = "https://api.tailscale.com",
        timeout_seconds: int = 30,
        clock: Callable[[], int] = utc_now_ms,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.cache = cache
        self.cache_key = cache_key
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self.session = session
        self.token_url = f"{api_base_url.rstrip('/')}/api/v2/oauth/token"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.clock = clock

    def _read_cached_token(self):
        try:
            cached_json = self.cache.get(self.cache_key)
            if not cached_json:
                return None
            cached = json.loads(cached_json)
            if cached.get("accessToken") and cached.get("expiresAt") and self.clock() < cached["expiresAt"]:
                return cached["accessToken"]
        except (StoreError, ValueError, TypeError, AttributeError) as e:
            logger.error("Error reading cached token, fetching a new one", error=str(e))
        return None

    async def _fetch_new_token(self) -> dict:
        logger.info("Fetching new Tailscale OAuth access token")
        form = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        try:
            async with self.session.post(self.token_url, data=form, timeout=self.timeout) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error("Tailscale OAuth token request failed", status=response.status, body=error_text[:200])
                    raise TokenExchangeError(f"Tailscale OAuth Error: {response.status} - {error_text}")
                token_data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TokenExchangeError(f"Tailscale OAuth request failed: {e}") from e
        except ValueError as e:
            raise TokenExchangeError(f"Tailscale OAuth returned invalid JSON: {e}") from e

        if not isinstance(token_data, dict) or "access_token" not in token_data or "expires_in" not in token_data:
            raise TokenExchangeError("Tailscale OAuth response missing access_token or expires_in")
        return token_data

    async def get_access_token(self) -> str:
        """
        Return a valid access token, exchanging client credentials when the
        cached one is missing, unreadable or about to expire.

        Raises:
            TokenExchangeError: if a new token is needed and the exchange fails
        """
        cached = self._read_cached_token()
        if cached:
            logger.debug("Using cached Tailscale OAuth access token")
            return cached

        token_data = await self._fetch_new_token()
        expires_in = int(token_data["expires_in"])
        to_cache = {
            "accessToken": token_data["access_token"],
            "expiresAt": self.clock() + (expires_in - self.expiry_buffer_seconds) * 1000,
        }

        try:
            ttl = max(int(expires_in - self.expiry_buffer_seconds / 2), 1)
            self.cache.put(self.cache_key, json.dumps(to_cache), ttl_seconds=ttl)
            logger.info("New Tailscale OAuth access token fetched and cached", ttl_seconds=ttl)
        except StoreError as e:
            logger.error("Error writing token to cache", error=str(e))

        return token_data["access_token"]
