"""
Two-level category tree management
"""
from typing import Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from shopease.models import Category, Product
from shopease.utils.exceptions import ConflictError, NotFoundError, ValidationError


def list_categories(db: Session):
    return db.query(Category).order_by(Category.parent_category_id.is_(None).desc(), Category.name).all()


def get_hierarchy(db: Session):
    return (
        db.query(Category)
        .options(selectinload(Category.subcategories))
        .filter(Category.parent_category_id.is_(None))
        .order_by(Category.name)
        .all()
    )


def get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.category_id == category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def get_subcategories(db: Session, parent_id: int):
    get_category(db, parent_id)
    return db.query(Category).filter(Category.parent_category_id == parent_id).order_by(Category.name).all()


def subtree_ids(category: Category) -> list:
    return [category.category_id] + [child.category_id for child in category.subcategories]


def _check_parent(db: Session, parent_id: Optional[int], category: Optional[Category] = None):
    if parent_id is None:
        return
    if category is not None and parent_id == category.category_id:
        raise ValidationError("Category cannot be its own parent")
    parent = db.query(Category).filter(Category.category_id == parent_id).first()
    if not parent:
        raise ValidationError("Parent category not found")
    if parent.parent_category_id is not None:
        raise ValidationError("Only two category levels are supported")
    # Products may only sit on leaf categories
    if db.query(Product).filter(Product.category_id == parent_id).count():
        raise ValidationError("Parent category already has products, move them first")
    if category is not None and category.subcategories:
        raise ValidationError("A category with subcategories cannot become a subcategory")


def _check_unique_name(db: Session, name: str, parent_id: Optional[int], exclude_id: Optional[int] = None):
    query = db.query(Category).filter(func.lower(Category.name) == name.lower())
    if parent_id is None:
        query = query.filter(Category.parent_category_id.is_(None))
    else:
        query = query.filter(Category.parent_category_id == parent_id)
    if exclude_id is not None:
        query = query.filter(Category.category_id != exclude_id)
    if query.first():
        raise ConflictError("A category with this name already exists at this level")


def create_category(db: Session, data: dict) -> Category:
    name = data["name"].strip()
    if not name:
        raise ValidationError("Category name is required")
    parent_id = data.get("parent_category_id")
    _check_parent(db, parent_id)
    _check_unique_name(db, name, parent_id)

    category = Category(**{**data, "name": name})
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(f"Created category {category.category_id} ({category.name})")
    return category


def update_category(db: Session, category_id: int, data: dict) -> Category:
    category = get_category(db, category_id)
    name = data["name"].strip()
    if not name:
        raise ValidationError("Category name is required")
    parent_id = data.get("parent_category_id")
    _check_parent(db, parent_id, category)
    _check_unique_name(db, name, parent_id, exclude_id=category_id)

    for key, value in {**data, "name": name}.items():
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int):
    category = get_category(db, category_id)
    in_use = db.query(Product).filter(Product.category_id.in_(subtree_ids(category))).count()
    if in_use:
        raise ValidationError(f"Cannot delete category: {in_use} product(s) are assigned to it")
    db.delete(category)
    db.commit()
    logger.info(f"Deleted category {category_id}")


def resolve_leaf_category(db: Session, category_id: Optional[int]) -> Optional[Category]:
    """Products may only reference categories without children"""
    if category_id is None:
        return None
    category = db.query(Category).filter(Category.category_id == category_id).first()
    if not category:
        raise ValidationError("Category not found")
    if not category.is_leaf:
        raise ValidationError("Products must be assigned to a subcategory, not a parent category")
    return category


def find_category_ids_by_name(db: Session, name: str) -> list:
    matches = db.query(Category).filter(func.lower(Category.name) == name.strip().lower()).all()
    ids = []
    for category in matches:
        ids.extend(subtree_ids(category))
    return ids
