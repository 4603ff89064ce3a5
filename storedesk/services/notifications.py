"""
Notification Dispatcher for StoreDesk
=====================================

Central entry point for owner-facing notifications. Every store event goes
through dispatch_notification(), which:

1. Builds a Mongolian title/body for the event
2. Emails the owner when they opted in (notification_settings["email_<event>"])
3. Saves an in-app Notification row
4. POSTs {event, data, timestamp} to the store's webhook_url, if set

Events:
-------
- new_order: {order_id, order_number, total_amount, payment_method}
- new_message: {conversation_id, customer_name, message, channel}
- new_customer: {customer_id, name, channel}
- low_stock: {product_id, product_name, remaining}
- order_status: {order_id, order_number, previous_status, new_status}
- escalation: {conversation_id, level, score, signals}
- compensation_suggested: {voucher_id, voucher_code, compensation_label,
  complaint_category_label, auto_approved}

Failure Handling:
-----------------
A notification must never break the request that caused it. Email and
webhook failures are logged and swallowed. Callers commit their own work
before dispatching, so a failed in-app insert only rolls back itself.
"""

import logging
from typing import Any, Dict, Literal

import requests
from sqlalchemy.orm import Session

from .. import config, email_service
from ..models import Notification, Store, User
from .helpers import format_price, utcnow

logger = logging.getLogger(__name__)

NotificationEvent = Literal[
    "new_order", "new_message", "new_customer", "low_stock", "order_status", "escalation",
    "compensation_suggested",
]

ESCALATION_LABELS = {
    "low": "Бага",
    "medium": "Дунд",
    "high": "Яаралтай",
    "critical": "Маш яаралтай",
}

STATUS_LABELS = {
    "pending": "Хүлээгдэж буй",
    "confirmed": "Баталгаажсан",
    "processing": "Бэлтгэж буй",
    "shipped": "Илгээсэн",
    "delivered": "Хүргэсэн",
    "cancelled": "Цуцлагдсан",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status or "", status or "")


def build_notification_content(event: str, data: Dict[str, Any]) -> Dict[str, str]:
    """Return {"title", "body"} for an event."""
    if event == "new_order":
        total = data.get("total_amount")
        return {
            "title": f"Шинэ захиалга #{data.get('order_number') or ''}",
            "body": f"Нийт: {format_price(total) if total else ''}",
        }
    if event == "new_message":
        message = data.get("message")
        if isinstance(message, str):
            body = message[:100] + "..." if len(message) > 100 else message
        else:
            body = ""
        return {"title": f"Шинэ мессеж: {data.get('customer_name') or 'Харилцагч'}", "body": body}
    if event == "new_customer":
        return {
            "title": "Шинэ харилцагч",
            "body": f"{data.get('name') or 'Нэргүй'} — {data.get('channel') or 'web'}",
        }
    if event == "low_stock":
        remaining = data.get("remaining")
        return {
            "title": f"Нөөц дуусаж байна: {data.get('product_name') or ''}",
            "body": f"Үлдэгдэл: {remaining if remaining is not None else 0} ширхэг",
        }
    if event == "order_status":
        return {
            "title": f"Захиалга #{data.get('order_number') or ''} статус өөрчлөгдлөө",
            "body": f"{status_label(data.get('previous_status'))} → {status_label(data.get('new_status'))}",
        }
    if event == "escalation":
        level = data.get("level") or ""
        return {
            "title": "Яаралтай чат шилжсэн",
            "body": f"Түвшин: {ESCALATION_LABELS.get(level, level)}. Шалтгаан: {data.get('signals') or ''}",
        }
    if event == "compensation_suggested":
        suffix = " (автоматаар баталгаажсан)" if data.get("auto_approved") else " (баталгаажуулалт хүлээж буй)"
        return {
            "title": f"Нөхөн олговор: {data.get('voucher_code') or ''}",
            "body": f"{data.get('complaint_category_label') or ''}: {data.get('compensation_label') or ''}{suffix}",
        }
    raise ValueError(f"Unknown notification event: {event}")


def _send_owner_email(owner: User, event: str, data: Dict[str, Any]) -> None:
    settings = owner.notification_settings or {}
    if not owner.email or not settings.get(f"email_{event}"):
        return

    if event == "new_order":
        email_service.send_order_email(
            owner.email,
            data.get("order_number") or "",
            data.get("total_amount") or 0,
            data.get("payment_method"),
        )
    elif event == "new_message":
        email_service.send_message_email(
            owner.email, data.get("customer_name") or "Харилцагч", data.get("message") or "",
        )
    elif event == "low_stock":
        email_service.send_low_stock_email(
            owner.email, data.get("product_name") or "", data.get("remaining") or 0,
        )
    # new_customer, order_status and escalation have no email template


def dispatch_webhook(url: str, event: str, data: Dict[str, Any]) -> bool:
    """POST the event to the store webhook. Returns True on a 2xx response."""
    payload = {"event": event, "data": data, "timestamp": utcnow().isoformat() + "Z"}
    try:
        response = requests.post(url, json=payload, timeout=config.WEBHOOK_TIMEOUT_SECONDS)
        response.raise_for_status()
        return True
    except requests.RequestException as e:
        logger.warning("Webhook %s for event %s failed: %s", url, event, e)
        return False


def dispatch_notification(db: Session, store_id: str, event: NotificationEvent, data: Dict[str, Any]) -> None:
    """Notify the store owner about an event (email, in-app row, webhook)."""
    store = db.get(Store, store_id)
    if store is None:
        logger.warning("Notification %s for unknown store %s dropped", event, store_id)
        return

    content = build_notification_content(event, data)

    owner = db.get(User, store.owner_id)
    if owner is not None:
        try:
            _send_owner_email(owner, event, data)
        except Exception as e:
            logger.error("Email notification failed for %s: %s", event, e)

    try:
        db.add(Notification(
            store_id=store_id,
            type=event,
            title=content["title"],
            body=content["body"],
            data=data,
            is_read=False,
        ))
        db.commit()
        logger.debug("Notification %s saved for store %s", event, store_id)
    except Exception as e:
        db.rollback()
        logger.error("Failed to save in-app notification %s: %s", event, e)

    if store.webhook_url:
        dispatch_webhook(store.webhook_url, event, data)
