import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import pytz
from twilio.rest import Client

from restaurant.core.config import Settings, settings as default_settings
from restaurant.domain.enums import EventKind
from restaurant.interfaces.INotifier import INotifier

logger = logging.getLogger(__name__)


def format_items(items: list) -> str:
    lines = []
    for item in items:
        quantity = item.get("quantity", 1)
        amount = float(item.get("price", 0)) * quantity
        lines.append(f"- {item.get('name', 'Unknown')} (x{quantity}): ${amount:.2f}")
    return "\n".join(lines)


def format_local_time(iso_value: Optional[str], tz_name: str) -> Optional[str]:
    """Snapshot timestamps are naive UTC ISO strings; render them in the restaurant's timezone."""
    if not iso_value:
        return None
    moment = datetime.fromisoformat(iso_value)
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(pytz.timezone(tz_name)).strftime("%Y-%m-%d %H:%M")


def build_message(event_kind: EventKind, order: Dict[str, Any], tz_name: str) -> str:
    customer = order.get("customer", {})
    items = format_items(order.get("items", []))
    total = float(order.get("total", 0))

    if event_kind == EventKind.CONFIRMED:
        return (
            f"✅ *Order Confirmation - Order #{order['id']}*\n\n"
            f"Dear {customer.get('name')}, thank you for your order!\n\n"
            f"🛒 Items:\n{items}\n\n"
            f"Total: ${total:.2f}\n\n"
            f"We will notify you when your order status changes."
        )

    if event_kind == EventKind.ADMIN_ALERT:
        return (
            f"🔔 *New Order Received - Order #{order['id']}*\n\n"
            f"👤 Customer: {customer.get('name')} ({customer.get('email')})\n"
            f"📞 Phone: {customer.get('phone') or '-'}\n"
            f"📍 Address: {customer.get('address') or '-'}\n\n"
            f"🛒 Items:\n{items}\n\n"
            f"Total: ${total:.2f}"
        )

    ready_at = format_local_time(order.get("estimatedReadyAt"), tz_name)
    ready_text = f"\n\n⏱️ Estimated Ready Time: {ready_at}" if ready_at else ""
    return (
        f"📦 *Order Status Update - Order #{order['id']}*\n\n"
        f"Dear {customer.get('name')}, your order status has been updated to: "
        f"{str(order.get('status', '')).upper()}.{ready_text}\n\n"
        f"🛒 Items:\n{items}\n"
        f"Total: ${total:.2f}"
    )


def _whatsapp(number: str) -> str:
    # Twilio requires the "whatsapp:" prefix
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class NotificationService(INotifier):
    def __init__(self, config: Settings = default_settings):
        self.settings = config
        self.client = None
        self.enabled = False

        # Only initialize if credentials exist in .env
        if config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_FROM_NUMBER:
            try:
                self.client = Client(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)
                self.enabled = True
                logger.info("✅ NotificationService: Twilio Client Initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Twilio Client: {e}")
        else:
            logger.warning("⚠️ NotificationService: Credentials missing in .env. Notifications disabled.")

    def _recipient(self, event_kind: EventKind, order: Dict[str, Any]) -> Optional[str]:
        if event_kind == EventKind.ADMIN_ALERT:
            return self.settings.ADMIN_PHONE_NUMBER
        return (order.get("customer") or {}).get("phone")

    async def notify(self, event_kind: EventKind, order_snapshot: Dict[str, Any]) -> None:
        if not self.enabled:
            logger.debug(f"NotificationService disabled, dropping {event_kind.value} for order #{order_snapshot.get('id')}")
            return

        to_number = self._recipient(event_kind, order_snapshot)
        if not to_number:
            logger.warning(f"⚠️ No phone number for {event_kind.value} (order #{order_snapshot.get('id')})")
            return

        body = build_message(event_kind, order_snapshot, self.settings.TIMEZONE)
        # The Twilio client is blocking
        await asyncio.to_thread(
            self.client.messages.create,
            from_=_whatsapp(self.settings.TWILIO_FROM_NUMBER),
            body=body,
            to=_whatsapp(to_number),
        )
        logger.info(f"✅ {event_kind.value} notification sent for order #{order_snapshot.get('id')}")
