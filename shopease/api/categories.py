from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopease.api.deps import get_admin_user
from shopease.schemas import CategoryIn, CategoryOut, CategoryTree
from shopease.services import categories_service
from shopease.utils.database import get_db

router = APIRouter()


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    """Get all categories"""
    return categories_service.list_categories(db)


@router.get("/categories/hierarchy", response_model=List[CategoryTree])
def category_hierarchy(db: Session = Depends(get_db)):
    """Get root categories with their subcategories"""
    return categories_service.get_hierarchy(db)


@router.get("/categories/{parent_id}/subcategories", response_model=List[CategoryOut])
def list_subcategories(parent_id: int, db: Session = Depends(get_db)):
    """Get subcategories of a category"""
    return categories_service.get_subcategories(db, parent_id)


@router.get("/admin/categories", response_model=List[CategoryOut])
def admin_list_categories(db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get all categories"""
    return categories_service.list_categories(db)


@router.post("/admin/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryIn, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Create a new category"""
    return categories_service.create_category(db, payload.model_dump())


@router.put("/admin/categories/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, payload: CategoryIn, db: Session = Depends(get_db),
                    admin=Depends(get_admin_user)):
    """Update a category"""
    return categories_service.update_category(db, category_id, payload.model_dump())


@router.delete("/admin/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Delete a category and its subcategories"""
    categories_service.delete_category(db, category_id)
    return {"success": True, "message": "Category deleted"}
