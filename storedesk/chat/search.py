"""
Database lookups used by the chat pipeline: product and order search,
recent history for the LLM context window, and the customer's vouchers.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..models import Message, Order, Product, Voucher
from ..services.helpers import icontains, utcnow
from .intent import extract_search_terms, map_category

logger = logging.getLogger(__name__)


def search_products(
    db: Session,
    terms: str,
    store_id: str,
    max_products: Optional[int] = None,
) -> List[Product]:
    """
    Find active products for a customer query.

    A query that names a category ("гутал", "цүнх") filters by that
    category; otherwise every meaningful word is matched against the name,
    description and search aliases. An empty query returns the newest
    active products.
    """
    query = (
        db.query(Product)
        .options(selectinload(Product.variants))
        .filter(Product.store_id == store_id, Product.status == "active")
    )

    category = map_category(terms)
    if category:
        query = query.filter(Product.category == category)
    else:
        words = [w for w in extract_search_terms(terms).split() if w]
        if words:
            conditions = []
            for word in words:
                conditions.extend([
                    icontains(Product.name, word),
                    icontains(Product.description, word),
                    icontains(Product.search_aliases, word),
                ])
            query = query.filter(or_(*conditions))

    products = query.order_by(Product.created_at.desc()).limit(max_products or 5).all()
    logger.debug("Product search %r (category=%s): %d hits", terms, category, len(products))
    return products


def search_orders(
    db: Session,
    store_id: str,
    customer_id: Optional[str] = None,
    order_number: Optional[str] = None,
) -> List[Order]:
    """Return the newest five orders, narrowed to a customer and/or an order number."""
    query = db.query(Order).filter(Order.store_id == store_id)
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)
    if order_number:
        query = query.filter(Order.order_number.ilike(f"%{order_number}%"))
    return query.order_by(Order.created_at.desc()).limit(5).all()


def fetch_recent_messages(db: Session, conversation_id: str, limit: int = 6) -> List[Dict[str, str]]:
    """Last `limit` messages in chronological order as {role, content} pairs."""
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc())
        .limit(limit)
        .all()
    )
    return [
        {"role": "user" if m.is_from_customer else "assistant", "content": m.content}
        for m in reversed(rows)
    ]


def get_active_vouchers(db: Session, customer_id: Optional[str], store_id: str) -> List[Voucher]:
    """Approved, unexpired vouchers the bot may remind the customer about."""
    if not customer_id:
        return []
    return (
        db.query(Voucher)
        .filter(
            Voucher.store_id == store_id,
            Voucher.customer_id == customer_id,
            Voucher.status == "approved",
            Voucher.valid_until > utcnow(),
        )
        .order_by(Voucher.valid_until.asc())
        .all()
    )


def load_products(db: Session, store_id: str, product_ids: List[str]) -> List[Product]:
    """Reload remembered products by id, keeping the remembered order."""
    if not product_ids:
        return []
    rows = (
        db.query(Product)
        .options(selectinload(Product.variants))
        .filter(Product.store_id == store_id, Product.id.in_(product_ids))
        .all()
    )
    by_id = {p.id: p for p in rows}
    return [by_id[pid] for pid in product_ids if pid in by_id]


def product_to_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "base_price": product.base_price,
        "images": product.images or [],
        "sales_script": product.sales_script,
        "faqs": product.faqs or {},
        "variants": [
            {
                "id": v.id,
                "size": v.size,
                "color": v.color,
                "price": v.price,
                "stock_quantity": v.stock_quantity,
            }
            for v in product.variants
        ],
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "total_amount": order.total_amount,
        "tracking_number": order.tracking_number,
        "created_at": order.created_at,
    }
