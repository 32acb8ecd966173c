from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopease.api.deps import get_admin_user, get_current_user
from shopease.models import User
from shopease.schemas import ProductIn, ProductOut, ProductStatusUpdate, ReviewIn, ReviewOut
from shopease.services import products_service
from shopease.utils.database import get_db

router = APIRouter()


def _page(rows, pagination) -> dict:
    return {"data": [ProductOut.model_validate(p) for p in rows], "pagination": pagination}


@router.get("/api/products")
def list_products(category: Optional[str] = None, page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
                  db: Session = Depends(get_db)):
    """Get active products"""
    return _page(*products_service.list_products(db, category, page, limit))


@router.get("/api/products/search")
def search_products(q: Optional[str] = None, category: Optional[str] = None,
                    min_price: Optional[Decimal] = Query(None, ge=0), max_price: Optional[Decimal] = Query(None, ge=0),
                    sort: str = "newest", page: int = Query(1, ge=1), limit: int = Query(20, ge=1),
                    db: Session = Depends(get_db)):
    """Search active products"""
    return _page(*products_service.search_products(db, q, category, min_price, max_price, sort, page, limit))


@router.get("/api/products/suggestions")
def product_suggestions(q: Optional[str] = None, db: Session = Depends(get_db)):
    """Get product name suggestions for search"""
    return products_service.get_suggestions(db, q)


@router.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    """Get product by ID"""
    return products_service.get_product(db, product_id)


# Reviews

@router.get("/products/{product_id}/reviews")
def product_reviews(product_id: int, db: Session = Depends(get_db)):
    """Get approved reviews of a product"""
    result = products_service.list_product_reviews(db, product_id)
    result["reviews"] = [ReviewOut.model_validate(r) for r in result["reviews"]]
    return result


@router.post("/products/{product_id}/reviews", response_model=ReviewOut, status_code=201)
def create_review(product_id: int, payload: ReviewIn, db: Session = Depends(get_db),
                  user: User = Depends(get_current_user)):
    """Review a product"""
    return products_service.create_review(db, product_id, user, payload.rating, payload.comment, payload.user_name)


# Admin

@router.get("/admin/products")
def admin_list_products(status: Optional[str] = None, search: Optional[str] = None,
                        page: int = Query(1, ge=1), limit: int = Query(50, ge=1),
                        db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get all products"""
    return _page(*products_service.list_all_products(db, status, search, page, limit))


@router.post("/admin/products", response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    """Create a new product"""
    return products_service.create_product(db, payload.model_dump(), admin)


@router.put("/admin/products/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductIn, db: Session = Depends(get_db),
                   admin: User = Depends(get_admin_user)):
    """Update a product"""
    return products_service.update_product(db, product_id, payload.model_dump(), admin)


@router.patch("/admin/products/{product_id}/status", response_model=ProductOut)
def set_product_status(product_id: int, payload: ProductStatusUpdate, db: Session = Depends(get_db),
                       admin: User = Depends(get_admin_user)):
    """Activate or archive a product"""
    return products_service.set_product_status(db, product_id, payload.status, admin)


@router.delete("/admin/products/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    """Delete a product"""
    products_service.delete_product(db, product_id, admin)
    return {"success": True, "message": "Product deleted"}
