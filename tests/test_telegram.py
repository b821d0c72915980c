import unittest
import sys
import os
import asyncio
from unittest.mock import MagicMock

import aiohttp

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from http_mocks import mock_response, mock_session
from node_monitor.services.telegram import TelegramNotifier

class TestTelegramNotifier(unittest.IsolatedAsyncioTestCase):
    """Test cases for Telegram delivery"""

    async def test_successful_send(self):
        session = mock_session(post=mock_response(json_data={"ok": True, "result": {}}))
        notifier = TelegramNotifier("123:abc", "-10042", session)

        result = await notifier.send_message("🚨 *web\\-1 OFFLINE*")

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "https://api.telegram.org/bot123:abc/sendMessage")
        self.assertEqual(kwargs["json"], {"chat_id": "-10042", "text": "🚨 *web\\-1 OFFLINE*",
                                          "parse_mode": "MarkdownV2"})

    async def test_api_error_is_reported(self):
        session = mock_session(post=mock_response(
            status=400, json_data={"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"}))
        result = await TelegramNotifier("123:abc", "-10042", session).send_message("bad *")
        self.assertFalse(result.success)
        self.assertIn("can't parse entities", result.error)

    async def test_network_error_does_not_raise(self):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("refused")
        result = await TelegramNotifier("123:abc", "-10042", session).send_message("hi")
        self.assertFalse(result.success)
        self.assertIn("refused", result.error)

    async def test_timeout_does_not_raise(self):
        session = MagicMock()
        session.post.side_effect = asyncio.TimeoutError()
        result = await TelegramNotifier("123:abc", "-10042", session).send_message("hi")
        self.assertFalse(result.success)

    async def test_missing_credentials(self):
        session = MagicMock()
        result = await TelegramNotifier(None, "-10042", session).send_message("hi")
        self.assertFalse(result.success)
        session.post.assert_not_called()

if __name__ == '__main__':
    unittest.main()
