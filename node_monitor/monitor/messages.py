"""
Telegram MarkdownV2 rendering of alerts
"""

import re

from node_monitor.monitor.reconciler import AlertIntent, AlertKind

_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!])")


def escape_markdown_v2(text) -> str:
    """Backslash-escape every character MarkdownV2 reserves"""
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", str(text))


def format_alert(intent: AlertIntent) -> str:
    name = escape_markdown_v2(intent.node_name)
    last_seen = escape_markdown_v2(intent.last_seen)
    seen_line = f"Last Seen: {last_seen} \\({intent.minutes_since_seen} mins ago\\)"

    if intent.kind == AlertKind.OFFLINE:
        return f"🚨 *{name} OFFLINE*\n\n{seen_line}"

    if intent.kind == AlertKind.STILL_OFFLINE:
        return (
            f"⏰ *{name} STILL OFFLINE*\n\n{seen_line}\n"
            f"Outage Duration: Approx {intent.outage_minutes} mins"
        )

    message = f"✅ *{name} ONLINE*"
    if intent.outage_known and intent.outage_minutes > 0:
        message += f"\nWas OFFLINE for approx\\. {intent.outage_minutes} mins\\."
    return message


def format_cycle_error(error: str) -> str:
    return f"🚨 *Monitor Error\\!* Failed during scheduled check: {escape_markdown_v2(error)}"


def format_no_devices() -> str:
    return "ℹ️ No Tailscale devices found in the tailnet\\."
