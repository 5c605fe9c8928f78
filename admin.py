"""
Admin gate

`require_admin` resolves the session's user from the store and checks its
role. Every admin operation takes the resulting AdminContext.
"""
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import SessionContext, find_user
from database import now
from errors import AuthRequired, Forbidden, NotFound, ValidationError
from schemas import Order, OrderCustomer

logger = structlog.get_logger(__name__)


class AdminContext:
    def __init__(self, db: Database, user: Dict[str, Any]):
        self.db = db
        self.user = user

    @property
    def user_id(self) -> str:
        return str(self.user["_id"])


def require_admin(db: Database, session: Optional[SessionContext]) -> AdminContext:
    if session is None:
        raise AuthRequired()
    user = find_user(db, session.user_id)
    if user is None:
        raise AuthRequired()
    if user.get("role") != "admin":
        logger.warning("admin_access_denied", user_id=session.user_id)
        raise Forbidden()
    return AdminContext(db, user)


def list_all_orders(ctx: AdminContext) -> List[Order]:
    docs = list(ctx.db["order"].find().sort("created_at", -1))
    user_ids = [ObjectId(d["user_id"]) for d in docs if ObjectId.is_valid(d.get("user_id", ""))]
    customers = {}
    if user_ids:
        for u in ctx.db["user"].find({"_id": {"$in": user_ids}}, {"username": 1, "email": 1}):
            customers[str(u["_id"])] = OrderCustomer(username=u.get("username"), email=u.get("email"))

    out = []
    for doc in docs:
        order = Order.from_document(doc)
        order.user = customers.get(order.user_id)
        out.append(order)
    return out


def update_order_status(ctx: AdminContext, order_id: str, status: Any) -> Order:
    if not isinstance(status, str):
        raise ValidationError("Status required")
    if not ObjectId.is_valid(order_id):
        raise NotFound("Order not found")
    doc = ctx.db["order"].find_one_and_update(
        {"_id": ObjectId(order_id)},
        {"$set": {"status": status, "updated_at": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise NotFound("Order not found")
    logger.info("order_status_updated", order_id=order_id, status=status, admin_id=ctx.user_id)
    return Order.from_document(doc)


def get_stats(ctx: AdminContext) -> Dict[str, Any]:
    # revenue counts every order, whatever its status
    rows = list(ctx.db["order"].aggregate([
        {"$group": {"_id": None, "revenue": {"$sum": "$total"}}},
    ]))
    return {
        "total_orders": ctx.db["order"].count_documents({}),
        "total_products": ctx.db["product"].count_documents({}),
        "total_users": ctx.db["user"].count_documents({}),
        "total_revenue": rows[0]["revenue"] if rows else 0,
    }
