"""
Account management: registration, the three login flows, admin user views
"""
import re
import secrets
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, selectinload

from shopease.models import User, UserRole, Order, OrderStatus
from shopease.utils.exceptions import AuthError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from shopease.utils.pagination import paginate
from shopease.utils.security import hash_password, verify_password, check_password_strength, create_token


def _token_payload(user: User) -> dict:
    return {
        "success": True,
        "token": create_token(user.user_id, user.role),
        "role": user.role,
        "user_id": user.user_id,
        "email": user.email,
        "phone_number": user.phone_number,
    }


def _placeholder_password_hash() -> str:
    # Never matches a bcrypt check, phone-only accounts cannot use password login
    return "!" + secrets.token_hex(30)


def _phone_email(phone_number: str) -> str:
    return f"phone_{re.sub(r'[^0-9]', '', phone_number)}@shopease.local"


def normalize_phone(phone: str) -> str:
    phone_number = re.sub(r"[\s\-()]", "", phone or "").strip()
    if len(phone_number) < 8:
        raise ValidationError("Phone number is required (e.g. +855123456789 or 123456789)")
    return phone_number if phone_number.startswith("+") else f"+855{phone_number}"


def register_user(db: Session, email: str, password: str) -> dict:
    email = email.strip().lower()
    check_password_strength(password)
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise ConflictError("User with this email already exists")

    user = User(email=email, password_hash=hash_password(password), role=UserRole.USER)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.user_id} ({user.email})")
    return _token_payload(user)


def login_user(db: Session, email: str, password: str) -> dict:
    user = db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated")
    return _token_payload(user)


def get_or_create_phone_user(db: Session, phone_number: str) -> User:
    user = db.query(User).filter(User.phone_number == phone_number).first()
    if user is None:
        user = User(
            email=_phone_email(phone_number),
            password_hash=_placeholder_password_hash(),
            phone_number=phone_number,
            is_phone_verified=True,
            role=UserRole.USER,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created phone user {user.user_id} ({phone_number})")
    elif not user.is_phone_verified:
        user.is_phone_verified = True
        db.commit()
    return user


def phone_login(db: Session, phone_number: str) -> dict:
    user = get_or_create_phone_user(db, phone_number)
    if not user.is_active:
        raise ForbiddenError("Account is deactivated")
    return _token_payload(user)


# ---------- Admin views ----------

def _order_stats_query(db: Session):
    delivered_total = case((Order.status == OrderStatus.DELIVERED, Order.total), else_=0)
    return db.query(
        Order.user_id.label("user_id"),
        func.count(Order.order_id).label("order_count"),
        func.coalesce(func.sum(delivered_total), 0).label("total_spent"),
        func.max(Order.created_at).label("last_order_date"),
    ).group_by(Order.user_id)


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


def list_users(db: Session, role: Optional[str] = None, is_active: Optional[bool] = None,
               search: Optional[str] = None, page: int = 1, limit: int = 20):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.upper())
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.email.ilike(pattern), User.phone_number.ilike(pattern)))

    users, pagination = paginate(query.order_by(User.created_at.desc(), User.user_id.desc()), page, limit)

    stats = {}
    if users:
        rows = _order_stats_query(db).filter(Order.user_id.in_([u.user_id for u in users])).all()
        stats = {row.user_id: row for row in rows}

    data = []
    for user in users:
        row = stats.get(user.user_id)
        data.append({
            "user": user,
            "order_count": row.order_count if row else 0,
            "total_spent": _money(row.total_spent if row else 0),
            "last_order_date": row.last_order_date if row else None,
        })
    return data, pagination


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_detail(db: Session, user_id: int) -> dict:
    user = get_user(db, user_id)
    orders = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.order_id.desc())
        .all()
    )
    delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]
    stats = {
        "total_orders": len(orders),
        "delivered_orders": len(delivered),
        "pending_orders": sum(1 for o in orders if o.status == OrderStatus.PENDING),
        "cancelled_orders": sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
        "total_spent": _money(sum((o.total for o in delivered), Decimal("0"))),
    }
    return {"user": user, "orders": orders, "stats": stats}


def get_user_orders(db: Session, user_id: int):
    get_user(db, user_id)
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.order_id.desc())
        .all()
    )


def set_user_status(db: Session, user_id: int, is_active: bool, acting_user: User) -> User:
    user = get_user(db, user_id)
    if user.user_id == acting_user.user_id and not is_active:
        raise ValidationError("You cannot deactivate your own account")
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.user_id} {'activated' if is_active else 'deactivated'} by admin {acting_user.user_id}")
    return user
