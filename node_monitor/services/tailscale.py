"""
Tailscale device listing and liveness classification
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Dict, List

import aiohttp
import structlog

from node_monitor.core.exceptions import LivenessSourceError
from node_monitor.monitor.classifier import classify
from node_monitor.monitor.observation import NodeObservation
from node_monitor.services.tailscale_auth import TailscaleTokenProvider

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_last_seen(value) -> datetime:
    """
    Parse an ISO-8601 lastSeen value into an aware UTC datetime.

    Raises:
        LivenessSourceError: if the value is missing or not ISO-8601
    """
    if not value or not isinstance(value, str):
        raise LivenessSourceError(f"Missing lastSeen timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError as e:
        raise LivenessSourceError(f"Invalid lastSeen timestamp {value!r}: {e}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class TailscaleClient:
    """Fetches the devices of one tailnet and classifies each as online/offline"""

    def __init__(
        self,
        tailnet_name: str,
        token_provider: TailscaleTokenProvider,
        session: aiohttp.ClientSession,
        down_threshold_minutes: int,
        api_base_url: str = "https://api.tailscale.com",
        timeout_seconds: int = 30,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.tailnet_name = tailnet_name
        self.token_provider = token_provider
        self.session = session
        self.down_threshold_minutes = down_threshold_minutes
        self.devices_url = f"{api_base_url.rstrip('/')}/api/v2/tailnet/{tailnet_name}/devices"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.clock = clock

    async def _fetch_devices(self) -> List[Dict]:
        access_token = await self.token_provider.get_access_token()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with self.session.get(
                self.devices_url, headers=headers, params={"fields": "all"}, timeout=self.timeout
            ) as response:
                if response.status < 200 or response.status >= 300:
                    error_text = await response.text()
                    logger.error("Tailscale API error", status=response.status, body=error_text[:200])
                    raise LivenessSourceError(f"Tailscale API Error: {response.status} - {error_text}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LivenessSourceError(f"Tailscale request failed: {e}") from e
        except ValueError as e:
            raise LivenessSourceError(f"Tailscale returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise LivenessSourceError("Tailscale response is not a JSON object")
        return data.get("devices") or []

    def _observe(self, device: Dict, now: datetime) -> NodeObservation:
        try:
            node_id = str(device["id"])
            name = device["name"]
        except KeyError as e:
            raise LivenessSourceError(f"Device entry missing field {e}") from e

        last_seen = device.get("lastSeen")
        liveness = classify(parse_last_seen(last_seen), now, self.down_threshold_minutes)
        addresses = device.get("addresses") or []

        logger.debug(
            "Processed device",
            node_id=node_id,
            node_name=name,
            last_seen=last_seen,
            minutes_since_seen=liveness.minutes_since_seen,
            threshold_minutes=self.down_threshold_minutes,
            is_online=liveness.is_online,
            tags=device.get("tags"),
        )

        return NodeObservation(
            node_id=node_id,
            name=name,
            last_seen=last_seen,
            is_online=liveness.is_online,
            minutes_since_seen=liveness.minutes_since_seen,
            tags=list(device.get("tags") or []),
            hostname=device.get("hostname"),
            os=device.get("os"),
            address=addresses[0] if addresses else None,
        )

    async def list_nodes(self) -> List[NodeObservation]:
        """
        All devices in the tailnet with their liveness verdict.

        Returns:
            List of NodeObservation, empty when the tailnet has no devices

        Raises:
            LivenessSourceError: on token, HTTP, network or payload errors
        """
        logger.info("Fetching Tailscale device details", tailnet=self.tailnet_name)
        devices = await self._fetch_devices()
        now = self.clock()
        nodes = [self._observe(device, now) for device in devices]
        logger.info("Processed devices", count=len(nodes))
        return nodes
