"""
Cart engine

Every mutation reads the whole cart, changes it in memory and writes the items
and total back. Two concurrent adds for the same user can overwrite each other;
the last write wins.
"""
from typing import Any, Optional

import structlog
from pymongo import ReturnDocument
from pymongo.database import Database

from database import now
from errors import AuthRequired, ValidationError
from schemas import DEFAULT_IMAGE, DEFAULT_SIZE, Cart, CartItem, to_number

logger = structlog.get_logger(__name__)


def get_cart(db: Database, user_id: Optional[str]) -> Cart:
    if not user_id:
        return Cart()
    stamp = now()
    doc = db["cart"].find_one_and_update(
        {"user_id": user_id},
        {"$setOnInsert": {"user_id": user_id, "items": [], "total": 0, "created_at": stamp, "updated_at": stamp}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return Cart.from_document(doc)


def _save(db: Database, cart: Cart) -> None:
    cart.recompute_total()
    db["cart"].update_one(
        {"user_id": cart.user_id},
        {"$set": {
            "items": [item.model_dump() for item in cart.items],
            "total": cart.total,
            "updated_at": now(),
        }},
        upsert=True,
    )


def add_item(db: Database, user_id: Optional[str], product_id: Optional[str], name: Optional[str], price: Any,
             image: Optional[str] = None, size: Optional[str] = None) -> Cart:
    if not user_id:
        raise AuthRequired()
    if not product_id:
        raise ValidationError("Product ID required")
    price = to_number(price, "Invalid price")
    product_id = str(product_id)
    size = size or DEFAULT_SIZE

    cart = get_cart(db, user_id)
    line = cart.find_line(product_id, size)
    if line is not None:
        line.quantity += 1
    else:
        cart.items.append(CartItem(
            product_id=product_id,
            name=name or "",
            price=price,
            quantity=1,
            image=image or DEFAULT_IMAGE,
            size=size,
        ))
    _save(db, cart)
    logger.info("cart_item_added", user_id=user_id, product_id=product_id, size=size, total=cart.total)
    return cart


def remove_item(db: Database, user_id: Optional[str], product_id: Optional[str], size: Optional[str] = None) -> Cart:
    """Drop every line for the product (and size, when given). Missing carts and lines are not errors."""
    if not user_id:
        raise AuthRequired()
    doc = db["cart"].find_one({"user_id": user_id})
    if doc is None:
        return Cart()
    cart = Cart.from_document(doc)
    product_id = str(product_id) if product_id else None
    cart.items = [item for item in cart.items if not item.matches(product_id, size)]
    _save(db, cart)
    logger.info("cart_item_removed", user_id=user_id, product_id=product_id, size=size, total=cart.total)
    return cart


def clear(db: Database, user_id: str) -> None:
    db["cart"].update_one({"user_id": user_id}, {"$set": {"items": [], "total": 0, "updated_at": now()}})
