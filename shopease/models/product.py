"""
Product and Category models
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy import DECIMAL
from sqlalchemy.orm import relationship

from shopease.utils.database import Base, utcnow


class ProductStatus:
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    ALL = (ACTIVE, ARCHIVED)


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("name", "parent_category_id", name="uq_category_name_parent"),)

    category_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    icon = Column(String(50))
    color = Column(String(20))
    logo_url = Column(String(500))
    parent_category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[category_id], back_populates="subcategories")
    subcategories = relationship(
        "Category",
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="Category.name",
    )
    products = relationship("Product", back_populates="category")

    @property
    def is_leaf(self) -> bool:
        return len(self.subcategories) == 0

    def __repr__(self):
        return f"<Category(id={self.category_id}, name={self.name}, parent={self.parent_category_id})>"


class Product(Base):
    __tablename__ = "products"

    product_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    price = Column(DECIMAL(10, 2), nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=ProductStatus.ACTIVE, nullable=False, index=True)
    images = Column(JSON, default=list)
    category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="SET NULL"), nullable=True, index=True)
    updated_by_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="products")
    updated_by = relationship("User")
    order_items = relationship("OrderItem", back_populates="product")
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")
    wishlist_items = relationship("Wishlist", back_populates="product", cascade="all, delete-orphan")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def __repr__(self):
        return f"<Product(id={self.product_id}, name={self.name}, price={self.price}, stock={self.stock})>"
