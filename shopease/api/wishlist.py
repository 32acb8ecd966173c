from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopease.api.deps import get_current_user
from shopease.models import User
from shopease.schemas import WishlistIn, WishlistOut
from shopease.services import products_service
from shopease.utils.database import get_db

router = APIRouter()


@router.get("/wishlist", response_model=List[WishlistOut])
def get_wishlist(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get the current user's wishlist"""
    return products_service.get_wishlist(db, user)


@router.post("/wishlist", response_model=WishlistOut, status_code=201)
def add_to_wishlist(payload: WishlistIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Add a product to the wishlist"""
    return products_service.add_to_wishlist(db, user, payload.product_id)


@router.delete("/wishlist/{product_id}")
def remove_from_wishlist(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Remove a product from the wishlist"""
    products_service.remove_from_wishlist(db, user, product_id)
    return {"success": True, "message": "Removed from wishlist"}


@router.get("/wishlist/check/{product_id}")
def check_wishlist(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Check whether a product is in the wishlist"""
    return {"product_id": product_id, "in_wishlist": products_service.is_in_wishlist(db, user, product_id)}
