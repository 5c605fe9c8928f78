"""Read-only product catalog."""
from typing import List, Optional

import structlog
from bson import ObjectId
from pydantic import ValidationError as SchemaError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import get_documents
from errors import NotFound
from schemas import Product

logger = structlog.get_logger(__name__)


def list_products(db: Optional[Database]) -> List[Product]:
    """Newest first. Any failure yields an empty list."""
    if db is None:
        return []
    try:
        return [Product.from_document(d) for d in get_documents("product", using=db)]
    except (PyMongoError, SchemaError):
        logger.exception("product_list_failed")
        return []


def get_product(db: Database, product_id: str) -> Product:
    if not ObjectId.is_valid(product_id):
        raise NotFound("Product not found")
    doc = db["product"].find_one({"_id": ObjectId(product_id)})
    if not doc:
        raise NotFound("Product not found")
    return Product.from_document(doc)
