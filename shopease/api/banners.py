from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopease.api.deps import get_admin_user
from shopease.schemas import BannerIn, BannerOut
from shopease.services import banners_service
from shopease.utils.database import get_db

router = APIRouter()


@router.get("/banners", response_model=List[BannerOut])
def active_banners(type: Optional[str] = None, db: Session = Depends(get_db)):
    """Get banners active right now"""
    return banners_service.list_active_banners(db, type)


@router.get("/admin/banners", response_model=List[BannerOut])
def list_banners(db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get all banners"""
    return banners_service.list_banners(db)


@router.get("/admin/banners/{banner_id}", response_model=BannerOut)
def get_banner(banner_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Get banner by ID"""
    return banners_service.get_banner(db, banner_id)


@router.post("/admin/banners", response_model=BannerOut, status_code=201)
def create_banner(payload: BannerIn, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Create a new banner"""
    return banners_service.create_banner(db, payload.model_dump())


@router.put("/admin/banners/{banner_id}", response_model=BannerOut)
def update_banner(banner_id: int, payload: BannerIn, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Update a banner"""
    return banners_service.update_banner(db, banner_id, payload.model_dump())


@router.delete("/admin/banners/{banner_id}")
def delete_banner(banner_id: int, db: Session = Depends(get_db), admin=Depends(get_admin_user)):
    """Delete a banner"""
    banners_service.delete_banner(db, banner_id)
    return {"success": True, "message": "Banner deleted"}
