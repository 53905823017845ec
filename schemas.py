"""
Database Schemas for Closet Cater

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="Hashed password")
    isAdmin: bool = False


class Product(BaseModel):
    name: str
    price: float = Field(0, ge=0, allow_inf_nan=False)
    description: str = ""
    image: str = ""
    brand: str = ""
    category: str = ""
    countInStock: int = Field(0, ge=0)
    numReviews: int = Field(0, ge=0)
    user: str = Field(..., description="Id of the admin who created the product")


class OrderItem(BaseModel):
    product: str
    name: str
    image: Optional[str] = None
    qty: int = Field(..., ge=1)
    price: float = Field(..., ge=0, allow_inf_nan=False)


class ShippingAddress(BaseModel):
    address: str
    city: str
    postalCode: str
    country: str


class PaymentResult(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class Order(BaseModel):
    user: str
    orderItems: List[OrderItem]
    shippingAddress: ShippingAddress
    paymentMethod: str = "PayPal"
    totalPrice: float = Field(..., ge=0)
    isPaid: bool = False
    paidAt: Optional[datetime] = None
    paymentResult: Optional[PaymentResult] = None


# ----------------------- Request bodies -----------------------
class RegisterBody(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateBody(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)


class ProductCreateBody(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = None
    image: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    countInStock: Optional[int] = Field(None, ge=0)


class ProductUpdateBody(BaseModel):
    name: str
    price: float = Field(..., ge=0, allow_inf_nan=False)
    description: str
    image: str
    brand: str
    category: str
    countInStock: int = Field(..., ge=0)


class OrderItemBody(BaseModel):
    product: str
    qty: int = Field(1, ge=1)


class OrderCreateBody(BaseModel):
    orderItems: List[OrderItemBody]
    shippingAddress: ShippingAddress
    paymentMethod: str = "PayPal"


# ----------------------- Product field policy -----------------------
PRODUCT_DEFAULTS = {
    "name": "Sample name",
    "price": 0,
    "image": "/images/sample.jpg",
    "brand": "Sample brand",
    "category": "Sample category",
    "countInStock": 0,
    "description": "Sample description",
}

EDITABLE_PRODUCT_FIELDS = tuple(PRODUCT_DEFAULTS)


def apply_product_fields(target: dict, fields: dict, fill_defaults: bool) -> dict:
    """Copy the editable product fields from ``fields`` onto ``target``.

    With ``fill_defaults`` every falsy value ("", 0, None, missing) is replaced by its entry in
    PRODUCT_DEFAULTS, so an explicit empty description still becomes the sample text. Without
    it the supplied values are written as they are. Creation fills defaults, updates do not.
    """
    for key in EDITABLE_PRODUCT_FIELDS:
        value = fields.get(key)
        if fill_defaults:
            value = value or PRODUCT_DEFAULTS[key]
        target[key] = value
    return target
