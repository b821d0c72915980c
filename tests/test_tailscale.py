import unittest
import sys
import os
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import aiohttp

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from http_mocks import mock_response, mock_session
from node_monitor.core.exceptions import LivenessSourceError, StoreError, TokenExchangeError
from node_monitor.services.tailscale import TailscaleClient, parse_last_seen
from node_monitor.services.tailscale_auth import TailscaleTokenProvider
from node_monitor.storage.kv_store import InMemoryKeyValueStore

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)

def token_provider(session, cache=None, clock=lambda: NOW_MS):
    return TailscaleTokenProvider(
        client_id="client-id",
        client_secret="client-secret",
        cache=cache if cache is not None else InMemoryKeyValueStore(),
        cache_key="tailscale_oauth_token",
        expiry_buffer_seconds=300,
        session=session,
        clock=clock,
    )

class TestTokenProvider(unittest.IsolatedAsyncioTestCase):
    """Test cases for OAuth token caching"""

    async def test_fetches_and_caches_new_token(self):
        session = mock_session(post=mock_response(json_data={"access_token": "tok-1", "expires_in": 3600}))
        cache = InMemoryKeyValueStore()
        provider = token_provider(session, cache)

        self.assertEqual(await provider.get_access_token(), "tok-1")

        cached = json.loads(cache.get("tailscale_oauth_token"))
        self.assertEqual(cached, {"accessToken": "tok-1", "expiresAt": NOW_MS + (3600 - 300) * 1000})
        _, kwargs = session.post.call_args
        self.assertEqual(kwargs["data"]["grant_type"], "client_credentials")
        self.assertEqual(session.post.call_args[0][0], "https://api.tailscale.com/api/v2/oauth/token")

    async def test_uses_cached_token_until_buffered_expiry(self):
        cache = InMemoryKeyValueStore()
        cache.put("tailscale_oauth_token", json.dumps({"accessToken": "cached", "expiresAt": NOW_MS + 1}))
        session = mock_session(post=mock_response(json_data={"access_token": "fresh", "expires_in": 3600}))

        self.assertEqual(await token_provider(session, cache).get_access_token(), "cached")
        session.post.assert_not_called()

        expired = token_provider(session, cache, clock=lambda: NOW_MS + 1)
        self.assertEqual(await expired.get_access_token(), "fresh")

    async def test_unreadable_cache_falls_back_to_exchange(self):
        cache = MagicMock()
        cache.get.side_effect = StoreError("down")
        cache.put.side_effect = StoreError("down")
        session = mock_session(post=mock_response(json_data={"access_token": "fresh", "expires_in": 3600}))

        self.assertEqual(await token_provider(session, cache).get_access_token(), "fresh")

    async def test_exchange_failure_raises(self):
        session = mock_session(post=mock_response(status=401, text="invalid client"))
        with self.assertRaises(TokenExchangeError):
            await token_provider(session).get_access_token()

    async def test_token_error_is_a_liveness_source_error(self):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("refused")
        with self.assertRaises(LivenessSourceError):
            await token_provider(session).get_access_token()

class TestTailscaleClient(unittest.IsolatedAsyncioTestCase):
    """Test cases for device listing"""

    def client(self, session):
        provider = MagicMock()
        provider.get_access_token = AsyncMock(return_value="tok")
        return TailscaleClient(
            tailnet_name="example.com",
            token_provider=provider,
            session=session,
            down_threshold_minutes=15,
            clock=lambda: NOW,
        )

    async def test_classifies_devices(self):
        devices = [
            {"id": "n1", "name": "web-1.tail.ts.net", "hostname": "web-1", "os": "linux",
             "addresses": ["100.64.0.1"], "tags": ["tag:critical"],
             "lastSeen": (NOW - timedelta(minutes=2)).strftime("%Y-%m-%dT%H:%M:%SZ")},
            {"id": "n2", "name": "db-1.tail.ts.net",
             "lastSeen": (NOW - timedelta(minutes=40)).strftime("%Y-%m-%dT%H:%M:%SZ")},
        ]
        session = mock_session(get=mock_response(json_data={"devices": devices}))

        nodes = await self.client(session).list_nodes()

        self.assertEqual([n.node_id for n in nodes], ["n1", "n2"])
        self.assertTrue(nodes[0].is_online)
        self.assertEqual(nodes[0].short_name, "web-1")
        self.assertEqual(nodes[0].address, "100.64.0.1")
        self.assertFalse(nodes[1].is_online)
        self.assertEqual(nodes[1].minutes_since_seen, 40)
        self.assertEqual(nodes[1].tags, [])

        args, kwargs = session.get.call_args
        self.assertEqual(args[0], "https://api.tailscale.com/api/v2/tailnet/example.com/devices")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(kwargs["params"], {"fields": "all"})

    async def test_empty_tailnet(self):
        session = mock_session(get=mock_response(json_data={"devices": []}))
        self.assertEqual(await self.client(session).list_nodes(), [])

    async def test_non_2xx_raises(self):
        session = mock_session(get=mock_response(status=503, text="unavailable"))
        with self.assertRaises(LivenessSourceError) as ctx:
            await self.client(session).list_nodes()
        self.assertIn("503", str(ctx.exception))

    async def test_network_error_raises(self):
        session = MagicMock()
        session.get.side_effect = aiohttp.ClientConnectionError("refused")
        with self.assertRaises(LivenessSourceError):
            await self.client(session).list_nodes()

    async def test_malformed_timestamp_is_a_fetch_error(self):
        devices = [{"id": "n1", "name": "web-1", "lastSeen": "yesterday"}]
        session = mock_session(get=mock_response(json_data={"devices": devices}))
        with self.assertRaises(LivenessSourceError):
            await self.client(session).list_nodes()

class TestParseLastSeen(unittest.TestCase):

    def test_zulu_suffix(self):
        self.assertEqual(parse_last_seen("2026-10-19T12:00:00Z"), NOW)

    def test_offset_is_normalized(self):
        self.assertEqual(parse_last_seen("2026-10-19T14:00:00+02:00"), NOW)

    def test_missing(self):
        with self.assertRaises(LivenessSourceError):
            parse_last_seen(None)

if __name__ == '__main__':
    unittest.main()
