"""
Order placement

An order is a snapshot of what the client checked out: names and prices are
copied from the request, and the total is stored exactly as sent.

The order insert and the cart clear are two separate writes, not one
transaction. If the clear fails the order stays and the caller sees a
StoreError.
"""
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pydantic import ValidationError as SchemaError
from pymongo.database import Database
from pymongo.errors import PyMongoError

import cart
from database import create_document
from errors import AuthRequired, StoreError, ValidationError
from schemas import DEFAULT_IMAGE, DEFAULT_SIZE, CartItem, Order, ShippingAddress, to_number

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = ("full_name", "phone", "address", "city", "pincode")


def _pick(data: Dict[str, Any], field: str, alias: Optional[str] = None) -> Any:
    if alias and data.get(alias) is not None:
        return data[alias]
    return data.get(field)


def normalize_item(raw: Any) -> CartItem:
    if not isinstance(raw, dict):
        raise ValidationError("Invalid item")
    product_id = _pick(raw, "product_id", "productId")
    if product_id is not None:
        product_id = str(product_id)
        if not ObjectId.is_valid(product_id):
            # sample products from the storefront carry ids that are not catalog references
            product_id = None
    quantity = raw.get("quantity")
    try:
        quantity = int(quantity) if quantity is not None else 1
    except (TypeError, ValueError):
        raise ValidationError("Invalid quantity")
    if quantity < 1:
        raise ValidationError("Invalid quantity")
    price = to_number(raw.get("price"), "Invalid price")
    try:
        return CartItem(
            product_id=product_id,
            name=raw.get("name") or "",
            price=price,
            quantity=quantity,
            image=raw.get("image") or DEFAULT_IMAGE,
            size=raw.get("size") or DEFAULT_SIZE,
        )
    except SchemaError:
        raise ValidationError("Invalid item")


def normalize_address(raw: Any) -> ShippingAddress:
    if not isinstance(raw, dict):
        raise ValidationError("Incomplete address")
    values = {}
    for field in ADDRESS_FIELDS:
        value = _pick(raw, field, ShippingAddress.model_fields[field].alias)
        if value is None or not str(value).strip():
            raise ValidationError("Incomplete address")
        values[field] = str(value).strip()
    return ShippingAddress(**values)


def place_order(db: Database, user_id: Optional[str], items: Optional[List[Any]], total: Any,
                address: Any, payment_method: Optional[str] = None) -> str:
    if not user_id:
        raise AuthRequired()
    if not items:
        raise ValidationError("No items in order")
    shipping_address = normalize_address(address)
    order = Order(
        user_id=user_id,
        items=[normalize_item(item) for item in items],
        total=to_number(total, "Invalid total"),
        payment_method=payment_method or "COD",
        shipping_address=shipping_address,
    )

    try:
        order_id = create_document("order", order.to_document(), using=db)
        cart.clear(db, user_id)
    except PyMongoError:
        logger.exception("order_create_failed", user_id=user_id)
        raise StoreError("Failed to place order")

    logger.info("order_placed", user_id=user_id, order_id=order_id, total=order.total, items=len(order.items))
    return order_id


def list_orders(db: Optional[Database], user_id: Optional[str]) -> List[Order]:
    if not user_id or db is None:
        return []
    try:
        docs = db["order"].find({"user_id": user_id}).sort("created_at", -1)
        return [Order.from_document(doc) for doc in docs]
    except (PyMongoError, SchemaError):
        logger.exception("order_lookup_failed", user_id=user_id)
        return []
