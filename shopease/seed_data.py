"""
Sample data generation for the catalog and customer tables
This script generates data for:
- Categories (two levels: sport -> equipment type)
- Products (assigned to leaf categories)
- Customers (email accounts and phone-only accounts)

For order flow simulation (create, pay, expire), use simulate_orders.py
"""
import random
from decimal import Decimal

from faker import Faker
from loguru import logger

from shopease.models import Category, Product, ProductStatus, User, UserRole
from shopease.utils.database import SessionLocal
from shopease.utils.logger import setup_logging
from shopease.utils.security import hash_password

fake = Faker(["en_US"])

CATEGORY_TREE = {
    "Football": [("Boots", 40, 180), ("Balls", 15, 60), ("Jerseys", 25, 90)],
    "Basketball": [("Shoes", 60, 220), ("Balls", 20, 70), ("Hoops", 80, 400)],
    "Volleyball": [("Balls", 20, 65), ("Knee Pads", 10, 40), ("Nets", 30, 150)],
    "Running": [("Shoes", 50, 200), ("Watches", 80, 450), ("Apparel", 15, 80)],
    "Fitness": [("Dumbbells", 15, 150), ("Yoga Mats", 10, 60), ("Resistance Bands", 5, 35)],
}

BRANDS = ["Nike", "Adidas", "Puma", "Mizuno", "Under Armour", "Molten", "Wilson", "Spalding", "Asics"]


class DataGenerator:
    def __init__(self, session_factory=SessionLocal):
        self.db = session_factory()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.db.close()

    def _commit(self, label: str, rows: list) -> list:
        try:
            self.db.commit()
            logger.info(f"Created {len(rows)} {label}")
            return rows
        except Exception as e:
            logger.error(f"Error creating {label}: {e}")
            self.db.rollback()
            return []

    def generate_categories(self, count: int = 5) -> list:
        """Generate parent categories with their leaf subcategories, returns the leaves"""
        logger.info(f"Generating {count} category groups...")

        leaves = []
        for name, children in list(CATEGORY_TREE.items())[:count]:
            parent = self.db.query(Category).filter(
                Category.name == name, Category.parent_category_id.is_(None)
            ).first()
            if parent is None:
                parent = Category(name=name, description=f"{name} equipment and apparel")
                self.db.add(parent)
                self.db.flush()
            for child_name, _, _ in children:
                exists = self.db.query(Category).filter(
                    Category.name == child_name, Category.parent_category_id == parent.category_id
                ).first()
                if exists:
                    leaves.append(exists)
                    continue
                child = Category(
                    name=child_name,
                    description=f"{name} {child_name.lower()}",
                    parent_category_id=parent.category_id,
                )
                self.db.add(child)
                leaves.append(child)
        return self._commit("leaf categories", leaves)

    def generate_products(self, count: int = 100) -> list:
        """Generate products for existing leaf categories"""
        logger.info(f"Generating {count} products...")

        leaves = [c for c in self.db.query(Category).filter(Category.parent_category_id.isnot(None)).all()]
        if not leaves:
            logger.warning("No leaf categories found. Please generate categories first.")
            return []

        price_ranges = {
            (parent, child): (low, high)
            for parent, children in CATEGORY_TREE.items()
            for child, low, high in children
        }

        products = []
        for _ in range(count):
            category = random.choice(leaves)
            low, high = price_ranges.get((category.parent.name, category.name), (10, 100))
            product = Product(
                name=f"{random.choice(BRANDS)} {fake.word().title()} {category.name.rstrip('s')}",
                description=fake.sentence(nb_words=12),
                price=Decimal(str(random.randint(low * 100, high * 100) / 100)),
                stock=random.randint(0, 100),
                status=random.choice([ProductStatus.ACTIVE] * 3 + [ProductStatus.ARCHIVED]),  # 75% active
                images=[f"/uploads/products/{fake.uuid4()}.jpg"],
                category_id=category.category_id,
            )
            products.append(product)
            self.db.add(product)
        return self._commit("products", products)

    def generate_customers(self, count: int = 50) -> list:
        """Generate customer accounts, a fifth of them phone-only"""
        logger.info(f"Generating {count} customers...")

        password_hash = hash_password("password123")  # Default password
        customers = []
        for _ in range(count):
            phone = f"+855{random.choice(['10', '12', '15', '70', '77', '96'])}{random.randint(100000, 9999999)}"
            if random.random() < 0.2:
                email = f"phone_{phone.lstrip('+')}@shopease.local"
                verified = True
            else:
                email = f"{fake.user_name()}{random.randint(1, 9999)}@{fake.free_email_domain()}"
                verified = random.random() < 0.5
            customer = User(
                email=email.lower(),
                password_hash=password_hash,
                phone_number=phone,
                is_phone_verified=verified,
                role=UserRole.USER,
                is_active=random.random() > 0.05,
            )
            customers.append(customer)
            self.db.add(customer)
        return self._commit("customers", customers)

    def clear_all_data(self):
        """Clear catalog and customer data"""
        logger.info("Clearing catalog and customer data...")
        try:
            # Delete in correct order to avoid foreign key constraints
            for product in self.db.query(Product).all():
                self.db.delete(product)
            self.db.query(Category).filter(Category.parent_category_id.isnot(None)).delete()
            self.db.query(Category).delete()
            self.db.query(User).filter(User.role == UserRole.USER).delete()
            self.db.commit()
            logger.info("All data cleared")
        except Exception as e:
            logger.error(f"Error clearing data: {e}")
            self.db.rollback()
            raise

    def generate_all(self, categories: int = 5, products: int = 100, customers: int = 50) -> dict:
        logger.info("=== Generating sample data ===")
        leaves = self.generate_categories(categories)
        if not leaves:
            logger.error("Failed to generate categories. Stopping.")
            return {"categories": 0, "products": 0, "customers": 0}

        summary = {
            "categories": len(leaves),
            "products": len(self.generate_products(products)),
            "customers": len(self.generate_customers(customers)),
        }
        logger.info(f"=== Sample data complete: {summary} ===")
        return summary


def main():
    """Main function to run data generation"""
    import argparse

    setup_logging()
    parser = argparse.ArgumentParser(description="Generate sample data for the ShopEase API")
    parser.add_argument("--categories", type=int, default=5, help="Number of category groups to generate")
    parser.add_argument("--products", type=int, default=100, help="Number of products to generate")
    parser.add_argument("--customers", type=int, default=50, help="Number of customers to generate")
    parser.add_argument("--clear", action="store_true", help="Clear existing catalog and customers")

    args = parser.parse_args()

    with DataGenerator() as generator:
        if args.clear:
            generator.clear_all_data()
        else:
            generator.generate_all(
                categories=args.categories,
                products=args.products,
                customers=args.customers,
            )


if __name__ == "__main__":
    main()
