"""
Node status collector for the Tailnet Node Monitor
Polls Tailscale for node liveness, reconciles each node against its stored
status and sends Telegram alerts on transitions
"""

import argparse
import asyncio
from dataclasses import dataclass, asdict
from typing import Callable, Optional, Tuple

import aiohttp
import structlog

from node_monitor.core.config import Settings, load_settings
from node_monitor.core.exceptions import ConfigurationError, LivenessSourceError, StoreError
from node_monitor.core.logging import configure_logging
from node_monitor.core.timeutils import utc_now_ms
from node_monitor.monitor.fleet_filter import is_monitored
from node_monitor.monitor.messages import format_alert, format_cycle_error, format_no_devices
from node_monitor.monitor.observation import NodeObservation
from node_monitor.monitor.reconciler import reconcile
from node_monitor.monitor.state import Unknown
from node_monitor.services.tailscale import TailscaleClient
from node_monitor.services.tailscale_auth import TailscaleTokenProvider
from node_monitor.services.telegram import TelegramNotifier
from node_monitor.storage.kv_store import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore
from node_monitor.storage.status_store import StatusStore, node_key

logger = structlog.get_logger(__name__)

STATUS_NAMESPACE = "node_status"
TOKEN_NAMESPACE = "token_cache"


@dataclass
class CycleReport:
    """Counters for one reconciliation cycle"""
    checked: int = 0
    skipped: int = 0
    alerts_sent: int = 0
    alert_failures: int = 0
    writes: int = 0
    write_failures: int = 0
    errors: int = 0
    aborted: bool = False


class StatusMonitor:
    """Runs reconciliation cycles over the monitored nodes"""

    def __init__(
        self,
        source,
        notifier,
        status_store: StatusStore,
        reminder_interval_minutes: int,
        monitor_tags=(),
        clock: Callable[[], int] = utc_now_ms,
    ):
        self.source = source
        self.notifier = notifier
        self.status_store = status_store
        self.reminder_interval_minutes = reminder_interval_minutes
        self.monitor_tags = list(monitor_tags)
        self.clock = clock

    async def run_cycle(self) -> CycleReport:
        """Fetch the fleet once and reconcile every monitored node"""
        report = CycleReport()

        try:
            nodes = await self.source.list_nodes()
        except LivenessSourceError as e:
            logger.error("Failed to get node details", error=str(e))
            await self._send_aggregate(format_cycle_error(str(e)))
            report.aborted = True
            return report
        except Exception as e:
            logger.exception("Unexpected error fetching node details")
            await self._send_aggregate(format_cycle_error(str(e)))
            report.aborted = True
            return report

        if not nodes:
            logger.info("No devices found in the tailnet")
            await self._send_aggregate(format_no_devices())
            return report

        if not self.monitor_tags:
            logger.info("No monitor tags configured, processing all nodes")

        for node in nodes:
            if not is_monitored(node, self.monitor_tags):
                logger.info("Skipping node without a monitor tag", node_id=node.node_id,
                            node_name=node.name, monitor_tags=self.monitor_tags)
                report.skipped += 1
                continue

            try:
                await self.process_node(node, report)
                report.checked += 1
            except Exception:
                logger.exception("Error processing node", node_id=node.node_id, node_name=node.name)
                report.errors += 1

        logger.info("Reconciliation cycle complete", **asdict(report))
        return report

    async def process_node(self, node: NodeObservation, report: CycleReport):
        """Read, decide, notify, write for a single node"""
        kv_key = node_key(node.node_id, node.short_name)
        log = logger.bind(node_id=node.node_id, node_name=node.name, kv_key=kv_key)

        try:
            prior = self.status_store.get(node.node_id, node.short_name)
        except StoreError as e:
            log.error("Could not read stored status, treating node as unseen", error=str(e))
            prior = Unknown()

        decision = reconcile(node, prior, self.clock(), self.reminder_interval_minutes)
        log.info("Node reconciled", is_online=node.is_online,
                 prior=type(prior).__name__, status=type(decision.status).__name__,
                 alert=decision.alert.kind.value if decision.alert else None)

        if decision.alert is not None:
            result = await self.notifier.send_message(format_alert(decision.alert))
            if result.success:
                report.alerts_sent += 1
            else:
                log.error("Alert delivery failed", alert=decision.alert.kind.value, error=result.error)
                report.alert_failures += 1

        if decision.should_persist:
            try:
                self.status_store.put(node.node_id, node.short_name, decision.status)
                report.writes += 1
            except StoreError as e:
                log.error("Could not write status", error=str(e))
                report.write_failures += 1

    async def _send_aggregate(self, text: str):
        result = await self.notifier.send_message(text)
        if not result.success:
            logger.error("Aggregate alert delivery failed", error=result.error)


def build_kv_stores(settings: Settings) -> Tuple[KeyValueStore, KeyValueStore]:
    """(status store, token cache) for the configured backend"""
    if settings.store_backend == "memory":
        return InMemoryKeyValueStore(), InMemoryKeyValueStore()
    if settings.store_backend != "database":
        raise ConfigurationError(f"Unknown STORE_BACKEND {settings.store_backend!r}")

    from node_monitor.database.connection import SessionLocal
    return (
        SqlKeyValueStore(STATUS_NAMESPACE, SessionLocal),
        SqlKeyValueStore(TOKEN_NAMESPACE, SessionLocal),
    )


def require_persistent_backend(settings: Settings):
    """Reject STORE_BACKEND=memory for callers whose store would not outlive one cycle"""
    if settings.store_backend == "memory":
        raise ConfigurationError(
            "STORE_BACKEND=memory only works with the long-running collector; "
            "use STORE_BACKEND=database for single runs and the query endpoint"
        )


def build_monitor(
    settings: Settings,
    session: aiohttp.ClientSession,
    status_kv: KeyValueStore,
    token_kv: KeyValueStore,
) -> StatusMonitor:
    token_provider = TailscaleTokenProvider(
        client_id=settings.tailscale_oauth_client_id,
        client_secret=settings.tailscale_oauth_client_secret,
        cache=token_kv,
        cache_key=settings.token_kv_key,
        expiry_buffer_seconds=settings.token_expiry_buffer_seconds,
        session=session,
        api_base_url=settings.tailscale_api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    source = TailscaleClient(
        tailnet_name=settings.tailnet_name,
        token_provider=token_provider,
        session=session,
        down_threshold_minutes=settings.down_threshold_minutes,
        api_base_url=settings.tailscale_api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    notifier = TelegramNotifier(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        session=session,
        api_base_url=settings.telegram_api_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )
    return StatusMonitor(
        source=source,
        notifier=notifier,
        status_store=StatusStore(status_kv),
        reminder_interval_minutes=settings.reminder_interval_minutes,
        monitor_tags=settings.monitor_tag_list,
    )


async def run_once(settings: Optional[Settings] = None) -> Optional[CycleReport]:
    """
    One scheduled invocation: validate configuration, then run a cycle.

    Returns None when the configuration is invalid.
    """
    try:
        if settings is None:
            settings = load_settings()
        require_persistent_backend(settings)
        status_kv, token_kv = build_kv_stores(settings)
    except ConfigurationError as e:
        logger.error("Configuration error, skipping cycle", error=str(e))
        return None

    async with aiohttp.ClientSession() as session:
        monitor = build_monitor(settings, session, status_kv, token_kv)
        return await monitor.run_cycle()


class StatusCollector:
    """Runs a reconciliation cycle every ``check_interval_seconds``"""

    def __init__(self, status_kv: Optional[KeyValueStore] = None, token_kv: Optional[KeyValueStore] = None):
        self.session = None
        self.status_kv = status_kv
        self.token_kv = token_kv
        self.running = False

    async def start(self):
        """Start the collector"""
        self.running = True
        logger.info("Starting node status collector")

        async with aiohttp.ClientSession() as session:
            self.session = session
            await self._collect_loop()

    async def stop(self):
        """Stop the collector"""
        self.running = False
        if self.session:
            await self.session.close()
        logger.info("Node status collector stopped")

    async def _collect_loop(self):
        """Main collection loop"""
        while self.running:
            interval = 60
            try:
                settings = load_settings()
                interval = settings.check_interval_seconds
                if self.status_kv is None or self.token_kv is None:
                    self.status_kv, self.token_kv = build_kv_stores(settings)
                monitor = build_monitor(settings, self.session, self.status_kv, self.token_kv)
                await monitor.run_cycle()
            except ConfigurationError as e:
                logger.error("Configuration error, skipping cycle", error=str(e))
            except Exception as e:
                logger.error("Error in collection loop", error=str(e))
            await asyncio.sleep(interval)


async def main(once: bool = False):
    """Main entry point for the collector"""
    if once:
        await run_once()
        return

    collector = StatusCollector()
    try:
        await collector.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    finally:
        await collector.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Tailnet node status collector")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = parser.parse_args()

    from node_monitor.core.config import settings
    configure_logging(settings.log_level)
    asyncio.run(main(once=args.once))
