"""
Startup data: demo products and the bootstrap admin.

Both steps are idempotent and run once from the application lifespan.
"""
import os

import structlog
from pymongo.database import Database

from auth import normalize_email, register_user
from database import create_document
from schemas import Product as ProductSchema

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_EMAIL = normalize_email(os.getenv("ADMIN_EMAIL", "admin@trendprints.com"))
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

logger = structlog.get_logger(__name__)

DEMO_PRODUCTS = [
    {"name": "Naruto Sage Mode", "price": 799, "image": "naruto.jpg", "category": "Naruto",
     "description": "Sage mode Naruto graphic tee.", "stock": 50},
    {"name": "Goku Ultra Instinct", "price": 899, "image": "goku.jpg", "category": "Dragon Ball",
     "description": "Ultra Instinct Goku print.", "stock": 50},
    {"name": "Luffy Gear 5", "price": 849, "image": "luffy.jpg", "category": "One Piece",
     "description": "Gear 5 Luffy print.", "stock": 50},
    {"name": "Levi Ackerman", "price": 999, "image": "levi.jpg", "category": "Attack on Titan",
     "description": "Captain Levi print.", "stock": 50},
    {"name": "Gojo Satoru", "price": 799, "image": "gojo.jpg", "category": "Jujutsu Kaisen",
     "description": "Gojo Satoru limitless print.", "stock": 50},
    {"name": "Itachi Uchiha", "price": 899, "image": "itachi.jpg", "category": "Naruto",
     "description": "Itachi Uchiha crow print.", "stock": 50},
]


def seed_products(db: Database) -> int:
    """Insert the demo catalog when the product collection is empty. Returns how many were added."""
    count = db["product"].count_documents({})
    if count > 0:
        logger.info("products_loaded", count=count)
        return 0
    for p in DEMO_PRODUCTS:
        create_document("product", ProductSchema(**p).model_dump(exclude={"id", "created_at"}), using=db)
    logger.info("products_seeded", count=len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)


def ensure_admin_exists(db: Database) -> bool:
    if db["user"].count_documents({"role": "admin"}) > 0:
        return False
    if db["user"].find_one({"email": ADMIN_EMAIL}):
        db["user"].update_one({"email": ADMIN_EMAIL}, {"$set": {"role": "admin"}})
        logger.info("admin_promoted", email=ADMIN_EMAIL)
        return True
    register_user(db, ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")
    logger.info("admin_created", email=ADMIN_EMAIL)
    return True
