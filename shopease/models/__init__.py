"""
SQLAlchemy models for the ShopEase API
"""

# Import all models to make them available when importing from models
from .user import User, UserRole
from .product import Product, ProductStatus, Category
from .order import Order, OrderItem, OrderStatusHistory, OrderStatus, PaymentMethod
from .wishlist import Wishlist
from .review import Review
from .banner import Banner, LinkType

__all__ = [
    "User",
    "UserRole",
    "Product",
    "ProductStatus",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderStatus",
    "PaymentMethod",
    "Wishlist",
    "Review",
    "Banner",
    "LinkType",
]
