"""
Pydantic request and response models
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------- Auth / users ----------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class FirebaseLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class DevLoginRequest(BaseModel):
    phone: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    role: str
    user_id: int
    email: str
    phone_number: Optional[str] = None


class UserOut(ORMModel):
    user_id: int
    email: str
    phone_number: Optional[str] = None
    is_phone_verified: bool
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserStatusUpdate(BaseModel):
    is_active: StrictBool


# ---------- Categories ----------

class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    logo_url: Optional[str] = None
    parent_category_id: Optional[int] = None


class CategoryOut(ORMModel):
    category_id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    logo_url: Optional[str] = None
    parent_category_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class CategoryTree(CategoryOut):
    subcategories: List["CategoryTree"] = []


# ---------- Products ----------

class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    status: Literal["ACTIVE", "ARCHIVED"] = "ACTIVE"
    images: List[str] = []
    category_id: Optional[int] = None


class ProductStatusUpdate(BaseModel):
    status: Literal["ACTIVE", "ARCHIVED"]


class ProductOut(ORMModel):
    product_id: int
    name: str
    description: Optional[str] = None
    price: float
    stock: int
    status: str
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    updated_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ---------- Banners ----------

class BannerIn(BaseModel):
    title: Optional[str] = None
    image_url: str
    link_type: Literal["none", "product", "category", "url"] = "none"
    link_value: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
    display_on_home: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class BannerOut(ORMModel):
    banner_id: int
    title: str
    image_url: str
    link_type: str
    link_value: Optional[str] = None
    display_order: int
    is_active: bool
    display_on_home: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ---------- Orders ----------

class OrderItemIn(BaseModel):
    product_id: Optional[int] = None
    quantity: int = 1
    product_image: Optional[str] = None
    color: Optional[str] = None
    offer: Optional[str] = None


class OrderCreate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    customer_district: Optional[str] = None
    payment_method: Optional[str] = None
    user_id: Optional[int] = None
    items: List[OrderItemIn] = []


class OrderStatusUpdate(BaseModel):
    status: str
    note: Optional[str] = None


class OrderItemOut(ORMModel):
    order_item_id: int
    product_id: Optional[int] = None
    product_name: str
    product_image: Optional[str] = None
    price: float
    quantity: int
    color: Optional[str] = None
    offer: Optional[str] = None


class OrderOut(ORMModel):
    order_id: int
    order_number: str
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_city: str
    customer_district: str
    payment_method: str
    status: str
    subtotal: float
    shipping: float
    total: float
    user_id: Optional[int] = None
    bakong_transaction_id: Optional[str] = None
    order_date: datetime
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []


class StatusHistoryOut(ORMModel):
    history_id: int
    status: str
    note: Optional[str] = None
    created_at: datetime


class KHQROut(BaseModel):
    qr_string: str
    md5: str
    amount: float
    currency: str
    order_number: str
    expires_at: datetime
    expires_in: int


class OrderCreatedOut(OrderOut):
    bakong_qr: Optional[KHQROut] = None


# ---------- Reviews ----------

class ReviewIn(BaseModel):
    rating: int
    comment: Optional[str] = None
    user_name: Optional[str] = None


class ReviewApprovalUpdate(BaseModel):
    is_approved: StrictBool


class ReviewOut(ORMModel):
    review_id: int
    product_id: int
    product_name: Optional[str] = None
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    is_approved: bool
    created_at: datetime


# ---------- Wishlist ----------

class WishlistIn(BaseModel):
    product_id: int


class WishlistOut(ORMModel):
    wishlist_id: int
    product_id: int
    created_at: datetime
    product: ProductOut
