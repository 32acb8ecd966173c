from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopease.api.deps import get_admin_user
from shopease.models import User
from shopease.schemas import OrderOut, ReviewApprovalUpdate, ReviewOut, UserOut, UserStatusUpdate
from shopease.services import orders_service, products_service, users_service
from shopease.utils.database import get_db

router = APIRouter()


# Dashboard and reports

@router.get("/dashboard/stats")
@router.get("/stats", include_in_schema=False)
def dashboard_stats(db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Order, revenue, product and user counts for the dashboard"""
    return orders_service.dashboard_stats(db)


@router.get("/admin/orders/cancelled")
def cancelled_orders(page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
                     db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get cancelled orders with their cancellation reason"""
    rows, pagination = orders_service.list_cancelled_orders(db, page, limit)
    data = []
    for row in rows:
        item = OrderOut.model_validate(row["order"]).model_dump()
        item.update({
            "total_items": row["total_items"],
            "cancellation_reason": row["cancellation_reason"],
            "cancelled_at": row["cancelled_at"],
        })
        data.append(item)
    return {"success": True, "data": data, "pagination": pagination}


@router.get("/admin/orders/report/timeout-impact")
def timeout_impact(db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Revenue and items lost to payment timeouts"""
    return {"success": True, **orders_service.timeout_impact_report(db)}


# Users

@router.get("/admin/users")
def list_users(role: Optional[str] = None, is_active: Optional[bool] = None, search: Optional[str] = None,
               page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
               db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get users with order statistics"""
    rows, pagination = users_service.list_users(db, role, is_active, search, page, limit)
    data = []
    for row in rows:
        item = UserOut.model_validate(row["user"]).model_dump()
        item.update({
            "order_count": row["order_count"],
            "total_spent": row["total_spent"],
            "last_order_date": row["last_order_date"],
        })
        data.append(item)
    return {"data": data, "pagination": pagination}


@router.get("/admin/users/{user_id}")
def user_detail(user_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get a user with their orders and spending"""
    detail = users_service.get_user_detail(db, user_id)
    return {
        "user": UserOut.model_validate(detail["user"]),
        "orders": [OrderOut.model_validate(o) for o in detail["orders"]],
        "stats": detail["stats"],
    }


@router.get("/admin/users/{user_id}/orders")
def user_orders(user_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get all orders of a user"""
    return [OrderOut.model_validate(o) for o in users_service.get_user_orders(db, user_id)]


@router.patch("/admin/users/{user_id}/status", response_model=UserOut)
def set_user_status(user_id: int, payload: UserStatusUpdate, db: Session = Depends(get_db),
                    admin: User = Depends(get_admin_user)):
    """Activate or deactivate a user"""
    return users_service.set_user_status(db, user_id, payload.is_active, admin)


# Reviews moderation

@router.get("/admin/reviews")
def list_reviews(product_id: Optional[int] = None, is_approved: Optional[bool] = None,
                 page: int = Query(1, ge=1), limit: int = Query(50, ge=1),
                 db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get all reviews for moderation"""
    rows, pagination = products_service.list_reviews(db, product_id, is_approved, page, limit)
    return {"data": [ReviewOut.model_validate(r) for r in rows], "pagination": pagination}


@router.patch("/admin/reviews/{review_id}/approve", response_model=ReviewOut)
def approve_review(review_id: int, payload: ReviewApprovalUpdate, db: Session = Depends(get_db),
                   admin=Depends(get_admin_user)):
    """Approve or hide a review"""
    return products_service.set_review_approval(db, review_id, payload.is_approved)


@router.delete("/admin/reviews/{review_id}")
def delete_review(review_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Delete a review"""
    products_service.delete_review(db, review_id)
    return {"success": True, "message": "Review deleted"}
