"""Telegram Bot notifier for node alerts."""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: Optional[str] = None


class TelegramNotifier:
    """Telegram Bot API wrapper; ``send_message`` never raises."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        session: aiohttp.ClientSession,
        api_base_url: str = "https://api.telegram.org",
        timeout_seconds: int = 30,
    ):
        """
        Initialize the notifier.

        Args:
            bot_token: Telegram bot token
            chat_id: Telegram chat ID
            session: shared aiohttp session
            api_base_url: Bot API base URL
            timeout_seconds: total request timeout
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.session = session
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def send_message(self, text: str) -> DeliveryResult:
        """
        Send a MarkdownV2 message to the configured chat.

        Args:
            text: message text, already escaped for MarkdownV2

        Returns:
            DeliveryResult(success=True) or DeliveryResult(False, error)
        """
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram bot token or chat ID missing, cannot send notification")
            return DeliveryResult(False, "Telegram secrets not configured")

        url = f"{self.api_base_url}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "MarkdownV2",
        }

        try:
            logger.info("Sending Telegram notification", chat_id=self.chat_id)
            async with self.session.post(url, json=payload, timeout=self.timeout) as response:
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Failed to send Telegram notification", error=str(e))
            return DeliveryResult(False, f"Request error: {e}")
        except ValueError as e:
            logger.error("Telegram returned a non-JSON response", error=str(e))
            return DeliveryResult(False, f"Invalid response: {e}")

        if not isinstance(data, dict) or not data.get("ok"):
            description = (data.get("description") or data.get("error_code")) if isinstance(data, dict) else data
            logger.error("Telegram API error", description=description)
            return DeliveryResult(False, f"Telegram API Error: {description}")

        logger.info("Telegram notification sent")
        return DeliveryResult(True)
