"""
Order, OrderItem and OrderStatusHistory models
"""
from sqlalchemy import Column, Integer, String, DateTime, DECIMAL, ForeignKey, Text
from sqlalchemy.orm import relationship

from shopease.utils.database import Base, utcnow


class OrderStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"

    ALL = (PENDING, PROCESSING, DELIVERED, CANCELLED, EXPIRED, FAILED)
    # Stock stays deducted while an order is in one of these
    RESERVED = (PENDING, PROCESSING, DELIVERED)
    RELEASED = (CANCELLED, EXPIRED, FAILED)


class PaymentMethod:
    CASH_ON_DELIVERY = "Cash on Delivery"
    ABA_PAY = "ABA Pay"
    BAKONG = "Bakong"

    ALL = (CASH_ON_DELIVERY, ABA_PAY, BAKONG)
    QR_BASED = (BAKONG,)


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    customer_address = Column(Text, nullable=False)
    customer_city = Column(String(100), nullable=False)
    customer_district = Column(String(100), nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(20), default=OrderStatus.PENDING, nullable=False, index=True)
    subtotal = Column(DECIMAL(10, 2), nullable=False)
    shipping = Column(DECIMAL(10, 2), nullable=False, default=0)
    total = Column(DECIMAL(10, 2), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True)
    bakong_transaction_id = Column(String(255), nullable=True, index=True)
    order_date = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.history_id",
    )

    @property
    def is_qr_payment(self) -> bool:
        return self.payment_method in PaymentMethod.QR_BASED

    def __repr__(self):
        return f"<Order(id={self.order_id}, number={self.order_number}, total={self.total}, status={self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    order_item_id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.product_id", ondelete="SET NULL"), nullable=True)
    product_name = Column(String(255), nullable=False)
    product_image = Column(Text)
    price = Column(DECIMAL(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    color = Column(String(50))
    offer = Column(String(255))
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")

    def __repr__(self):
        return f"<OrderItem(id={self.order_item_id}, product_id={self.product_id}, quantity={self.quantity}, price={self.price})>"


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    history_id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    note = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="status_history")

    def __repr__(self):
        return f"<OrderStatusHistory(order_id={self.order_id}, status={self.status})>"
