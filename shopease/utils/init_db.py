"""
Database initialization script
Creates all tables, the default admin account and the default categories
"""
from loguru import logger

from shopease.config import settings
from shopease.models import Category, User, UserRole
from shopease.utils.database import create_tables, drop_tables, SessionLocal
from shopease.utils.logger import setup_logging
from shopease.utils.security import hash_password

DEFAULT_CATEGORIES = [
    ("Football", "Football boots, balls and training gear", "sports_soccer", "#2E7D32"),
    ("Basketball", "Basketball shoes, balls and apparel", "sports_basketball", "#EF6C00"),
    ("Volleyball", "Volleyball equipment and apparel", "sports_volleyball", "#1565C0"),
    ("Other Sports", "Equipment for every other sport", "sports", "#6A1B9A"),
]


def seed_admin(db, email: str = None, password: str = None) -> User:
    email = (email or settings.ADMIN_EMAIL).lower()
    admin = db.query(User).filter(User.email == email).first()
    if admin:
        logger.info(f"Admin account {email} already exists")
        return admin
    admin = User(
        email=email,
        password_hash=hash_password(password or settings.ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    logger.info(f"Created admin account {email}")
    return admin


def seed_categories(db) -> int:
    created = 0
    for name, description, icon, color in DEFAULT_CATEGORIES:
        exists = db.query(Category).filter(
            Category.name == name, Category.parent_category_id.is_(None)
        ).first()
        if exists:
            continue
        db.add(Category(name=name, description=description, icon=icon, color=color))
        created += 1
    db.commit()
    logger.info(f"Seeded {created} default categories")
    return created


def seed_defaults():
    db = SessionLocal()
    try:
        seed_admin(db)
        seed_categories(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_database():
    """Initialize the database by creating all tables"""
    logger.info("Creating database tables...")
    create_tables()
    seed_defaults()
    logger.info("Database initialized successfully")


def reset_database():
    """Reset the database by dropping and recreating all tables"""
    logger.info("Dropping existing tables...")
    drop_tables()
    init_database()
    logger.info("Database reset successfully")


if __name__ == "__main__":
    import argparse

    setup_logging()
    parser = argparse.ArgumentParser(description="Database management script")
    parser.add_argument("--init", action="store_true", help="Create tables and seed defaults")
    parser.add_argument("--reset", action="store_true", help="Drop, recreate and seed all tables")

    args = parser.parse_args()

    if args.reset:
        reset_database()
    elif args.init:
        init_database()
    else:
        parser.print_help()
