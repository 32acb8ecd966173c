"""
Promotional banners
"""
import re
from datetime import timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from shopease.models import Banner, LinkType
from shopease.utils.database import utcnow
from shopease.utils.exceptions import NotFoundError, ValidationError

UPLOAD_PATH_RE = re.compile(r"/uploads/(banners|products)/[^/?#]+")


def normalize_image_url(image_url: str) -> str:
    """Reduce a relative or absolute upload URL to its /uploads/<kind>/<file> path"""
    value = (image_url or "").strip()
    if not value:
        raise ValidationError("Image URL is required")
    if value.startswith("uploads/"):
        value = "/" + value
    match = UPLOAD_PATH_RE.search(value)
    if not match:
        raise ValidationError("Image URL must point to an uploaded banner or product image")
    return match.group(0)


def _validate(data: dict) -> dict:
    data = dict(data)
    data["image_url"] = normalize_image_url(data.get("image_url"))
    link_type = data.get("link_type") or LinkType.NONE
    if link_type not in LinkType.ALL:
        raise ValidationError(f"link_type must be one of: {', '.join(LinkType.ALL)}")
    data["link_type"] = link_type
    if link_type == LinkType.NONE:
        data["link_value"] = None
    elif not (data.get("link_value") or "").strip():
        raise ValidationError("link_value is required for this link_type")
    # Stored as naive UTC like every other timestamp
    for key in ("start_date", "end_date"):
        value = data.get(key)
        if value is not None and value.tzinfo is not None:
            data[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
    start, end = data.get("start_date"), data.get("end_date")
    if start and end and start > end:
        raise ValidationError("start_date must be before end_date")
    if not (data.get("title") or "").strip():
        data["title"] = f"Banner_{int(utcnow().timestamp() * 1000)}"
    return data


def list_active_banners(db: Session, banner_type: Optional[str] = None):
    now = utcnow()
    query = db.query(Banner).filter(
        Banner.is_active.is_(True),
        or_(Banner.start_date.is_(None), Banner.start_date <= now),
        or_(Banner.end_date.is_(None), Banner.end_date >= now),
    )
    if banner_type == "home":
        query = query.filter(Banner.display_on_home.is_(True))
    elif banner_type == "category":
        query = query.filter(Banner.display_on_home.is_(False))
    elif banner_type:
        raise ValidationError("type must be 'home' or 'category'")
    return query.order_by(Banner.display_order.asc(), Banner.created_at.desc()).all()


def list_banners(db: Session):
    return db.query(Banner).order_by(Banner.display_order.asc(), Banner.created_at.desc()).all()


def get_banner(db: Session, banner_id: int) -> Banner:
    banner = db.query(Banner).filter(Banner.banner_id == banner_id).first()
    if not banner:
        raise NotFoundError("Banner not found")
    return banner


def create_banner(db: Session, data: dict) -> Banner:
    banner = Banner(**_validate(data))
    db.add(banner)
    db.commit()
    db.refresh(banner)
    return banner


def update_banner(db: Session, banner_id: int, data: dict) -> Banner:
    banner = get_banner(db, banner_id)
    for key, value in _validate(data).items():
        setattr(banner, key, value)
    db.commit()
    db.refresh(banner)
    return banner


def delete_banner(db: Session, banner_id: int):
    banner = get_banner(db, banner_id)
    db.delete(banner)
    db.commit()
