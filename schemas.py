"""
Database Schemas

Define your MongoDB collection schemas here using Pydantic models.
These schemas are used for data validation in your application.

Each Pydantic model represents a collection in your database.
Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Product -> "product" collection
- Cart -> "cart" collection
- Order -> "order" collection

Documents read back from MongoDB go through `from_document`, which turns the
ObjectId into a string `id` and validates the rest of the record.
"""
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from errors import ValidationError

Number = Union[int, float]

DEFAULT_IMAGE = "default.jpg"
DEFAULT_SIZE = "M"


def to_number(value: Any, message: str = "Invalid number") -> Number:
    """Coerce a client supplied value to int or float; integral values become int."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(message)
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise ValidationError(message)
    if isinstance(number, float):
        if not math.isfinite(number):
            raise ValidationError(message)
        if number.is_integer():
            return int(number)
    return number


class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]):
        data = dict(doc)
        if data.get("_id") is not None:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class User(Document):
    """
    Users collection schema
    Collection name: "user"
    """
    username: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address (unique)")
    password_hash: str = Field(..., description="bcrypt hash")
    role: str = Field("user", description="Role: user | admin")
    created_at: Optional[datetime] = None


class Product(Document):
    """
    Products collection schema
    Collection name: "product"
    """
    name: str = Field(..., description="Product name")
    price: Number = Field(..., description="Price in rupees")
    image: str = Field(DEFAULT_IMAGE, description="Image file name or URL")
    category: str = Field(..., description="Product category")
    description: Optional[str] = Field(None, description="Product description")
    stock: int = Field(0, ge=0, description="Units in stock")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("price")
    @classmethod
    def price_positive(cls, v):
        if v <= 0:
            raise ValueError("price must be positive")
        return v


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(None, alias="productId", description="Product ObjectId as string")
    name: str = ""
    price: Number = 0
    quantity: int = Field(1, ge=1)
    image: str = DEFAULT_IMAGE
    size: str = DEFAULT_SIZE

    def matches(self, product_id: str, size: Optional[str] = None) -> bool:
        if self.product_id != product_id:
            return False
        return size is None or self.size == size


class Cart(Document):
    """
    Carts collection schema
    Collection name: "cart"

    One cart per user. `total` is recomputed from the items on every change.
    """
    user_id: Optional[str] = Field(None, alias="userId")
    items: List[CartItem] = Field(default_factory=list)
    total: Number = 0

    def find_line(self, product_id: str, size: str) -> Optional[CartItem]:
        for item in self.items:
            if item.matches(product_id, size):
                return item
        return None

    def recompute_total(self) -> Number:
        self.total = sum(item.price * item.quantity for item in self.items)
        return self.total


class ShippingAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName")
    phone: str
    address: str
    city: str
    pincode: str


class OrderCustomer(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class Order(Document):
    """
    Orders collection schema
    Collection name: "order"

    `total` is stored exactly as the client sent it.
    """
    user_id: str = Field(..., alias="userId", description="User ObjectId as string")
    items: List[CartItem]
    total: Number
    status: str = Field("Pending", description="Free text, set by admins")
    payment_method: str = Field("COD", alias="paymentMethod")
    shipping_address: ShippingAddress = Field(..., alias="shippingAddress")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    user: Optional[OrderCustomer] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id", "created_at", "user"})
