"""
Products, reviews and wishlists
"""
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from shopease.models import Product, ProductStatus, Review, User, Wishlist
from shopease.services.categories_service import find_category_ids_by_name, resolve_leaf_category
from shopease.utils.exceptions import ConflictError, NotFoundError, ValidationError
from shopease.utils.pagination import paginate

SORT_OPTIONS = {
    "name": (Product.name.asc(),),
    "price_asc": (Product.price.asc(),),
    "price_desc": (Product.price.desc(),),
    "newest": (Product.created_at.desc(), Product.product_id.desc()),
}


def _active_products(db: Session):
    return db.query(Product).options(selectinload(Product.category)).filter(Product.status == ProductStatus.ACTIVE)


def _filter_category(db: Session, query, category: Optional[str]):
    if not category:
        return query
    return query.filter(Product.category_id.in_(find_category_ids_by_name(db, category)))


def list_products(db: Session, category: Optional[str] = None, page: int = 1, limit: int = 20):
    query = _filter_category(db, _active_products(db), category)
    return paginate(query.order_by(Product.created_at.desc(), Product.product_id.desc()), page, limit)


def search_products(db: Session, q: Optional[str] = None, category: Optional[str] = None,
                    min_price: Optional[Decimal] = None, max_price: Optional[Decimal] = None,
                    sort: str = "newest", page: int = 1, limit: int = 20):
    if sort not in SORT_OPTIONS:
        raise ValidationError(f"Invalid sort option. Use one of: {', '.join(SORT_OPTIONS)}")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError("min_price cannot be greater than max_price")

    query = _filter_category(db, _active_products(db), category)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    return paginate(query.order_by(*SORT_OPTIONS[sort]), page, limit)


def get_suggestions(db: Session, q: Optional[str], limit: int = 10) -> list:
    if not q or len(q.strip()) < 2:
        return []
    pattern = f"%{q.strip()}%"
    products = (
        _active_products(db)
        .filter(Product.name.ilike(pattern))
        .order_by(Product.name)
        .limit(min(limit, 10))
        .all()
    )
    return [
        {"product_id": p.product_id, "name": p.name, "category_name": p.category_name}
        for p in products
    ]


def get_product(db: Session, product_id: int, active_only: bool = True) -> Product:
    query = _active_products(db) if active_only else db.query(Product)
    product = query.filter(Product.product_id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_all_products(db: Session, status: Optional[str] = None, search: Optional[str] = None,
                      page: int = 1, limit: int = 50):
    query = db.query(Product).options(selectinload(Product.category))
    if status:
        query = query.filter(Product.status == status.upper())
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    return paginate(query.order_by(Product.created_at.desc(), Product.product_id.desc()), page, limit)


def create_product(db: Session, data: dict, admin: User) -> Product:
    resolve_leaf_category(db, data.get("category_id"))
    product = Product(**data, updated_by_id=admin.user_id)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info(f"Admin {admin.user_id} created product {product.product_id} ({product.name})")
    return product


def update_product(db: Session, product_id: int, data: dict, admin: User) -> Product:
    product = get_product(db, product_id, active_only=False)
    resolve_leaf_category(db, data.get("category_id"))
    for key, value in data.items():
        setattr(product, key, value)
    product.updated_by_id = admin.user_id
    db.commit()
    db.refresh(product)
    logger.info(f"Admin {admin.user_id} updated product {product.product_id}")
    return product


def set_product_status(db: Session, product_id: int, status: str, admin: User) -> Product:
    if status not in ProductStatus.ALL:
        raise ValidationError("Status must be ACTIVE or ARCHIVED")
    product = get_product(db, product_id, active_only=False)
    product.status = status
    product.updated_by_id = admin.user_id
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int, admin: User):
    product = get_product(db, product_id, active_only=False)
    # Order items keep their snapshot, only the product reference is cleared
    for item in product.order_items:
        item.product_id = None
    db.delete(product)
    db.commit()
    logger.info(f"Admin {admin.user_id} deleted product {product_id}")


# ---------- Reviews ----------

def list_product_reviews(db: Session, product_id: int) -> dict:
    reviews = (
        db.query(Review)
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .order_by(Review.created_at.desc(), Review.review_id.desc())
        .all()
    )
    avg, count = (
        db.query(func.avg(Review.rating), func.count(Review.review_id))
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .one()
    )
    return {
        "reviews": reviews,
        "average_rating": f"{float(avg):.1f}" if avg is not None else "0.0",
        "total_reviews": count or 0,
    }


def create_review(db: Session, product_id: int, user: User, rating: int,
                  comment: Optional[str] = None, user_name: Optional[str] = None) -> Review:
    if not isinstance(rating, int) or rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    product = db.query(Product).filter(Product.product_id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    existing = db.query(Review).filter(Review.product_id == product_id, Review.user_id == user.user_id).first()
    if existing:
        raise ConflictError("You have already reviewed this product")

    review = Review(
        product_id=product_id,
        user_id=user.user_id,
        user_name=(user_name or "").strip() or user.email.split("@")[0],
        rating=rating,
        comment=comment,
        is_approved=True,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def list_reviews(db: Session, product_id: Optional[int] = None, is_approved: Optional[bool] = None,
                 page: int = 1, limit: int = 50):
    query = db.query(Review).options(selectinload(Review.product), selectinload(Review.user))
    if product_id is not None:
        query = query.filter(Review.product_id == product_id)
    if is_approved is not None:
        query = query.filter(Review.is_approved.is_(is_approved))
    return paginate(query.order_by(Review.created_at.desc(), Review.review_id.desc()), page, limit)


def set_review_approval(db: Session, review_id: int, is_approved: bool) -> Review:
    review = db.query(Review).filter(Review.review_id == review_id).first()
    if not review:
        raise NotFoundError("Review not found")
    review.is_approved = is_approved
    db.commit()
    db.refresh(review)
    return review


def delete_review(db: Session, review_id: int):
    review = db.query(Review).filter(Review.review_id == review_id).first()
    if not review:
        raise NotFoundError("Review not found")
    db.delete(review)
    db.commit()


# ---------- Wishlist ----------

def get_wishlist(db: Session, user: User):
    return (
        db.query(Wishlist)
        .join(Product, Wishlist.product_id == Product.product_id)
        .options(selectinload(Wishlist.product).selectinload(Product.category))
        .filter(Wishlist.user_id == user.user_id, Product.status == ProductStatus.ACTIVE)
        .order_by(Wishlist.created_at.desc(), Wishlist.wishlist_id.desc())
        .all()
    )


def add_to_wishlist(db: Session, user: User, product_id: int) -> Wishlist:
    if not db.query(Product).filter(Product.product_id == product_id).first():
        raise NotFoundError("Product not found")
    if db.query(Wishlist).filter(Wishlist.user_id == user.user_id, Wishlist.product_id == product_id).first():
        raise ConflictError("Product already in wishlist")
    entry = Wishlist(user_id=user.user_id, product_id=product_id)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def remove_from_wishlist(db: Session, user: User, product_id: int):
    entry = db.query(Wishlist).filter(Wishlist.user_id == user.user_id, Wishlist.product_id == product_id).first()
    if not entry:
        raise NotFoundError("Product not in wishlist")
    db.delete(entry)
    db.commit()


def is_in_wishlist(db: Session, user: User, product_id: int) -> bool:
    return db.query(Wishlist).filter(
        Wishlist.user_id == user.user_id, Wishlist.product_id == product_id
    ).first() is not None
