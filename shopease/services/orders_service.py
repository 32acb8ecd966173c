"""
Order lifecycle: creation with stock reservation, guarded status transitions,
queries and admin reports.

Stock is deducted when an order is created and given back exactly once, when
the order first moves from a reserved status (pending/processing/delivered)
into a released one (cancelled/expired/failed). Every transition goes through
swap_status(), a compare-and-swap UPDATE on the current status, so concurrent
paths (webhook, polling, expiry sweep, admin) cannot both win.
"""
import random
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from shopease.models import (
    Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentMethod, Product, ProductStatus, User,
)
from shopease.utils.database import utcnow
from shopease.utils.exceptions import (
    ForbiddenError, InsufficientStockError, NotFoundError, ShopError, ValidationError,
)
from shopease.utils.pagination import paginate

CENT = Decimal("0.01")
SHIPPING_FEE = Decimal("0.00")
CUSTOMER_FIELDS = ("customer_name", "customer_phone", "customer_address", "customer_city", "customer_district")
PAYMENT_TIMEOUT_MARKER = "Payment timeout"


def round_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_order_number(db: Session) -> str:
    """ORD-YYYYMMDD-XXXXXX, retried until unused"""
    date_part = utcnow().strftime("%Y%m%d")
    for _ in range(10):
        candidate = f"ORD-{date_part}-{random.randint(0, 999999):06d}"
        if not db.query(Order.order_id).filter(Order.order_number == candidate).first():
            return candidate
    raise ShopError("Could not allocate a unique order number")


def _validate_order_payload(data: dict) -> list:
    items = data.get("items") or []
    if not items:
        raise ValidationError("Order must contain at least one item")

    missing = [name for name in CUSTOMER_FIELDS if not (data.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"Missing customer information: {', '.join(missing)}")

    if data.get("payment_method") not in PaymentMethod.ALL:
        raise ValidationError(f"Invalid payment method. Use one of: {', '.join(PaymentMethod.ALL)}")

    for item in items:
        if not item.get("product_id"):
            raise ValidationError("Each item requires a product_id")
        quantity = item.get("quantity")
        if quantity is None:
            item["quantity"] = 1
        elif not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Item quantity must be a positive integer")
    return items


def _resolve_owner(db: Session, user_id: Optional[int]) -> Optional[int]:
    if user_id is None:
        return None
    if not db.query(User.user_id).filter(User.user_id == user_id).first():
        raise ValidationError("User not found")
    return user_id


def create_order(db: Session, data: dict, user_id: Optional[int] = None) -> Order:
    """
    Price, validate and persist an order in one transaction, deducting stock.

    Prices come from the database, client-side prices are ignored. Raises
    ValidationError / InsufficientStockError with nothing written on failure.
    """
    items = _validate_order_payload(data)

    try:
        owner_id = _resolve_owner(db, user_id)
        lines = []
        subtotal = Decimal("0")
        for item in items:
            product = (
                db.query(Product)
                .filter(Product.product_id == item["product_id"])
                .with_for_update()
                .first()
            )
            if not product or product.status != ProductStatus.ACTIVE:
                raise ValidationError(f"Product {item['product_id']} is not available")
            if product.stock < item["quantity"]:
                raise InsufficientStockError(
                    f"Insufficient stock for {product.name}. "
                    f"Available: {product.stock}, requested: {item['quantity']}"
                )
            price = round_money(product.price)
            subtotal += price * item["quantity"]
            lines.append((product, price, item))

        subtotal = round_money(subtotal)
        total = round_money(subtotal + SHIPPING_FEE)

        order = Order(
            order_number=generate_order_number(db),
            customer_name=data["customer_name"].strip(),
            customer_phone=data["customer_phone"].strip(),
            customer_address=data["customer_address"].strip(),
            customer_city=data["customer_city"].strip(),
            customer_district=data["customer_district"].strip(),
            payment_method=data["payment_method"],
            status=OrderStatus.PENDING,
            subtotal=subtotal,
            shipping=SHIPPING_FEE,
            total=total,
            user_id=owner_id,
        )
        db.add(order)
        db.flush()

        for product, price, item in lines:
            updated = (
                db.query(Product)
                .filter(Product.product_id == product.product_id, Product.stock >= item["quantity"])
                .update({Product.stock: Product.stock - item["quantity"]}, synchronize_session=False)
            )
            if updated != 1:
                raise InsufficientStockError(f"Insufficient stock for {product.name}")
            images = product.images or []
            db.add(OrderItem(
                order_id=order.order_id,
                product_id=product.product_id,
                product_name=product.name,
                product_image=item.get("product_image") or (images[0] if images else None),
                price=price,
                quantity=item["quantity"],
                color=item.get("color"),
                offer=item.get("offer"),
            ))

        db.add(OrderStatusHistory(order_id=order.order_id, status=OrderStatus.PENDING, note="Order created"))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        f"Order {order.order_number} created: {len(lines)} item(s), total={order.total}, "
        f"payment={order.payment_method}, user={order.user_id}"
    )
    return order


def restore_stock(db: Session, order: Order):
    for item in order.items:
        if item.product_id is None:
            continue
        db.query(Product).filter(Product.product_id == item.product_id).update(
            {Product.stock: Product.stock + item.quantity}, synchronize_session=False
        )
        logger.info(f"Restored {item.quantity} unit(s) of product {item.product_id} from order {order.order_number}")


def swap_status(db: Session, order: Order, from_status: str, to_status: str, note: str) -> bool:
    """
    Move an order from from_status to to_status if it is still in from_status.
    Restores stock on reserved -> released. Returns False when another path
    already changed the status. The caller commits.
    """
    updated = (
        db.query(Order)
        .filter(Order.order_id == order.order_id, Order.status == from_status)
        .update({Order.status: to_status, Order.updated_at: utcnow()}, synchronize_session=False)
    )
    if updated != 1:
        return False
    if from_status in OrderStatus.RESERVED and to_status in OrderStatus.RELEASED:
        restore_stock(db, order)
    db.add(OrderStatusHistory(order_id=order.order_id, status=to_status, note=note))
    return True


def _commit_swap(db: Session, order: Order, from_status: str, to_status: str, note: str) -> bool:
    try:
        swapped = swap_status(db, order, from_status, to_status, note)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    return swapped


def confirm_payment(db: Session, order: Order, note: str) -> bool:
    swapped = _commit_swap(db, order, OrderStatus.PENDING, OrderStatus.PROCESSING, note)
    if swapped:
        logger.info(f"Payment confirmed for order {order.order_number}")
    return swapped


def cancel_unpaid_order(db: Session, order: Order, note: str) -> bool:
    swapped = _commit_swap(db, order, OrderStatus.PENDING, OrderStatus.CANCELLED, note)
    if swapped:
        logger.info(f"Order {order.order_number} cancelled: {note}")
    return swapped


def payment_window_elapsed(order: Order, expiry_minutes: int, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return order.created_at <= now - timedelta(minutes=expiry_minutes)


def update_order_status(db: Session, order_id: int, new_status: str, admin: User,
                        note: Optional[str] = None) -> Order:
    if new_status not in OrderStatus.ALL:
        raise ValidationError(f"Invalid status. Use one of: {', '.join(OrderStatus.ALL)}")
    order = get_order(db, order_id)
    current = order.status
    if current in OrderStatus.RELEASED and new_status in OrderStatus.RESERVED:
        raise ValidationError(f"Order is already {current} and cannot be reopened")

    message = f"Status changed from {current} to {new_status}"
    if note:
        message = f"{message}: {note}"
    if not _commit_swap(db, order, current, new_status, message):
        raise ValidationError("Order status changed concurrently, please retry")
    logger.info(f"Admin {admin.user_id} changed order {order.order_number} from {current} to {new_status}")
    return order


# ---------- Queries ----------

def get_order(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.order_id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def check_order_access(order: Order, user: Optional[User]):
    if user is None:
        raise ForbiddenError("Access denied")
    if not user.is_admin and order.user_id != user.user_id:
        raise ForbiddenError("Access denied")


def get_order_for_user(db: Session, order_id: int, user: User) -> Order:
    order = get_order(db, order_id)
    check_order_access(order, user)
    return order


def list_orders(db: Session, user: User, status: Optional[str] = None, search: Optional[str] = None,
                start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                user_id: Optional[int] = None, page: int = 1, limit: int = 20):
    query = db.query(Order).options(selectinload(Order.items))
    if user.is_admin:
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
    else:
        query = query.filter(Order.user_id == user.user_id)

    if status:
        query = query.filter(Order.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Order.order_number.ilike(pattern),
            Order.customer_name.ilike(pattern),
            Order.customer_phone.ilike(pattern),
        ))
    if start_date:
        query = query.filter(Order.order_date >= start_date)
    if end_date:
        query = query.filter(Order.order_date <= end_date)

    return paginate(query.order_by(Order.order_date.desc(), Order.order_id.desc()), page, limit)


def get_tracking(db: Session, order: Order) -> list:
    if not order.status_history:
        db.add(OrderStatusHistory(order_id=order.order_id, status=order.status, note="Order created"))
        db.commit()
        db.refresh(order)
    return order.status_history


def list_cancelled_orders(db: Session, page: int = 1, limit: int = 20):
    query = (
        db.query(Order)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .filter(Order.status == OrderStatus.CANCELLED)
        .order_by(Order.updated_at.desc(), Order.order_id.desc())
    )
    orders, pagination = paginate(query, page, limit)
    data = []
    for order in orders:
        latest = order.status_history[-1] if order.status_history else None
        data.append({
            "order": order,
            "total_items": sum(item.quantity for item in order.items),
            "cancellation_reason": latest.note if latest and latest.note else "Unknown reason",
            "cancelled_at": latest.created_at if latest else order.updated_at,
        })
    return data, pagination


def _timeout_orders_query(db: Session):
    timed_out = (
        db.query(OrderStatusHistory.order_id)
        .filter(OrderStatusHistory.note.like(f"%{PAYMENT_TIMEOUT_MARKER}%"))
    )
    return db.query(Order).filter(Order.status == OrderStatus.CANCELLED, Order.order_id.in_(timed_out))


def timeout_impact_report(db: Session) -> dict:
    orders = (
        _timeout_orders_query(db)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .all()
    )
    total_revenue = sum((o.total for o in orders), Decimal("0"))
    total_items = sum(item.quantity for o in orders for item in o.items)

    by_method = defaultdict(lambda: {"count": 0, "revenue": Decimal("0")})
    for order in orders:
        bucket = by_method[order.payment_method or "Unknown"]
        bucket["count"] += 1
        bucket["revenue"] += order.total

    since = utcnow() - timedelta(days=30)
    daily = defaultdict(lambda: {"order_count": 0, "revenue": Decimal("0")})
    for order in orders:
        if order.created_at >= since:
            day = daily[order.created_at.date().isoformat()]
            day["order_count"] += 1
            day["revenue"] += order.total

    return {
        "summary": {
            "total_timeout_orders": len(orders),
            "total_lost_revenue": float(round_money(total_revenue)),
            "total_lost_items": total_items,
            "average_order_value": float(round_money(total_revenue / len(orders))) if orders else 0.0,
        },
        "by_payment_method": {
            method: {"count": v["count"], "revenue": float(round_money(v["revenue"]))}
            for method, v in by_method.items()
        },
        "trend": {
            "last_30_days": [
                {"date": date, "order_count": v["order_count"], "revenue": float(round_money(v["revenue"]))}
                for date, v in sorted(daily.items(), reverse=True)
            ],
            "description": "Orders lost to payment timeout in last 30 days",
        },
    }


def dashboard_stats(db: Session) -> dict:
    counts = dict(db.query(Order.status, func.count(Order.order_id)).group_by(Order.status).all())
    revenue = (
        db.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.status == OrderStatus.DELIVERED)
        .scalar()
    )
    week_ago = utcnow() - timedelta(days=7)
    recent_revenue = (
        db.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.status == OrderStatus.DELIVERED, Order.created_at >= week_ago)
        .scalar()
    )
    recent_orders = db.query(func.count(Order.order_id)).filter(Order.created_at >= week_ago).scalar()

    stats = {
        "total_orders": sum(counts.values()),
        "total_products": db.query(func.count(Product.product_id)).scalar(),
        "total_users": db.query(func.count(User.user_id)).scalar(),
        "total_revenue": float(round_money(revenue or 0)),
        "revenue_last_7_days": float(round_money(recent_revenue or 0)),
        "orders_last_7_days": recent_orders or 0,
    }
    for status in OrderStatus.ALL:
        stats[f"{status}_orders"] = counts.get(status, 0)
    return stats
