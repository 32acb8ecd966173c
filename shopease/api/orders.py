from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopease.api.deps import get_admin_user, get_current_user, get_optional_user, get_payment_provider
from shopease.models import User
from shopease.schemas import (
    KHQROut, OrderCreate, OrderCreatedOut, OrderOut, OrderStatusUpdate, StatusHistoryOut,
)
from shopease.services import orders_service, payments_service
from shopease.services.bakong_service import BakongService
from shopease.utils.database import get_db

router = APIRouter()


@router.post("/orders", response_model=OrderCreatedOut, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db),
                 user: Optional[User] = Depends(get_optional_user),
                 provider: BakongService = Depends(get_payment_provider)):
    """Place an order, reserving stock"""
    data = payload.model_dump()
    owner_id = user.user_id if user else data.pop("user_id", None)
    order = orders_service.create_order(db, data, user_id=owner_id)
    qr = payments_service.issue_qr_after_create(db, order, provider)
    result = OrderCreatedOut.model_validate(order)
    if qr:
        result.bakong_qr = KHQROut(**qr)
    return result


@router.get("/api/orders")
@router.get("/orders", include_in_schema=False)
def list_orders(status: Optional[str] = None, search: Optional[str] = None,
                start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                user_id: Optional[int] = None, page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
                db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get orders, all for admins and own for users"""
    orders, pagination = orders_service.list_orders(
        db, user, status=status, search=search, start_date=start_date, end_date=end_date,
        user_id=user_id, page=page, limit=limit,
    )
    return {"data": [OrderOut.model_validate(o) for o in orders], "pagination": pagination}


@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get order by ID"""
    return orders_service.get_order_for_user(db, order_id, user)


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(order_id: int, payload: OrderStatusUpdate, db: Session = Depends(get_db),
                        admin: User = Depends(get_admin_user)):
    """Change an order's status"""
    return orders_service.update_order_status(db, order_id, payload.status, admin, payload.note)


@router.get("/orders/{order_id}/tracking")
def order_tracking(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get an order with its status history"""
    order = orders_service.get_order_for_user(db, order_id, user)
    history = orders_service.get_tracking(db, order)
    return {
        "order": OrderOut.model_validate(order),
        "history": [StatusHistoryOut.model_validate(h) for h in history],
    }
