"""
Order Service for StoreDesk
===========================

Order creation shared by the public checkout endpoint, the chat order
draft and the flow `create_order` action.

Shipping:
---------
calculate_shipping() looks up the named zone in store.shipping_settings:

    {
        "zones": [{"name": "УБ хот", "price": 5000, "enabled": true}, ...],
        "free_shipping_enabled": true,
        "free_shipping_minimum": 100000
    }

No zone, an unknown zone or a disabled zone costs 0. An enabled zone is
free when free shipping is enabled and the subtotal reaches the minimum.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..models import Order, OrderItem
from .helpers import generate_number

logger = logging.getLogger(__name__)


def calculate_shipping(subtotal: float, zone_name: Optional[str], settings: Optional[Dict[str, Any]]) -> float:
    settings = settings or {}
    zones = settings.get("zones") or []
    if not zone_name or not zones:
        return 0

    zone = next((z for z in zones if z.get("name") == zone_name and z.get("enabled")), None)
    if zone is None:
        return 0

    if settings.get("free_shipping_enabled") and subtotal >= (settings.get("free_shipping_minimum") or 0):
        return 0

    return float(zone.get("price") or 0)


def create_order(
    db: Session,
    store_id: str,
    items: Iterable[Dict[str, Any]],
    customer_id: Optional[str] = None,
    order_type: str = "delivery",
    shipping_amount: float = 0,
    shipping_address: Optional[str] = None,
    customer_phone: Optional[str] = None,
    notes: Optional[str] = None,
    prefix: str = "ORD",
    status: str = "pending",
    payment_status: str = "pending",
    payment_method: Optional[str] = None,
    pos_session_id: Optional[str] = None,
    commit: bool = True,
) -> Order:
    """
    Insert an order with its items.

    Each item dict carries product_id, variant_id, quantity, unit_price and
    variant_label (all optional except unit_price).
    """
    order_items = [
        OrderItem(
            product_id=item.get("product_id"),
            variant_id=item.get("variant_id"),
            quantity=item.get("quantity") or 1,
            unit_price=item.get("unit_price") or 0,
            variant_label=item.get("variant_label"),
        )
        for item in items
    ]
    subtotal = sum(i.unit_price * i.quantity for i in order_items)

    order = Order(
        store_id=store_id,
        customer_id=customer_id,
        pos_session_id=pos_session_id,
        order_number=generate_number(prefix),
        status=status,
        payment_status=payment_status,
        payment_method=payment_method,
        order_type=order_type,
        subtotal=subtotal,
        shipping_amount=shipping_amount,
        total_amount=subtotal + shipping_amount,
        shipping_address=shipping_address,
        customer_phone=customer_phone,
        notes=notes,
        items=order_items,
    )
    db.add(order)
    if commit:
        db.commit()
        db.refresh(order)
    else:
        db.flush()
    logger.info("Created order: %s (id=%s, total=%s)", order.order_number, order.id, order.total_amount)
    return order
