"""
Order flow simulator

Places random orders through the order service and then, per order, either
confirms payment, cancels it through the admin path or leaves a Bakong order
pending so the expiry sweep picks it up.
"""
import random
import time

from faker import Faker
from loguru import logger

from shopease.models import OrderStatus, PaymentMethod, Product, ProductStatus, User, UserRole
from shopease.services import orders_service
from shopease.utils.database import SessionLocal
from shopease.utils.exceptions import ShopError
from shopease.utils.logger import setup_logging

fake = Faker(["en_US"])

CITIES = {
    "Phnom Penh": ["Chamkar Mon", "Daun Penh", "Toul Kork", "Sen Sok"],
    "Siem Reap": ["Svay Dangkum", "Sala Kamreuk"],
    "Battambang": ["Svay Por", "Rattanak"],
}


class OrderSimulator:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.customers = []
        self.products = []
        self.admin_id = None
        self.load_customers()
        self.load_products()

    def load_customers(self):
        """Load existing customers and an admin account"""
        db = self.session_factory()
        try:
            self.customers = [u.user_id for u in db.query(User).filter(User.role == UserRole.USER).limit(50).all()]
            admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
            self.admin_id = admin.user_id if admin else None
            logger.info(f"Loaded {len(self.customers)} customers")
        finally:
            db.close()

    def load_products(self):
        """Load active products that still have stock"""
        db = self.session_factory()
        try:
            self.products = [
                p.product_id for p in
                db.query(Product).filter(Product.status == ProductStatus.ACTIVE, Product.stock > 0).limit(50).all()
            ]
            logger.info(f"Loaded {len(self.products)} products")
        finally:
            db.close()

    def build_payload(self) -> dict:
        city = random.choice(list(CITIES))
        num_items = random.randint(1, min(3, len(self.products)))
        return {
            "customer_name": fake.name(),
            "customer_phone": f"+855{random.randint(10000000, 99999999)}",
            "customer_address": fake.street_address(),
            "customer_city": city,
            "customer_district": random.choice(CITIES[city]),
            "payment_method": random.choice(PaymentMethod.ALL),
            "items": [
                {"product_id": product_id, "quantity": random.randint(1, 2)}
                for product_id in random.sample(self.products, num_items)
            ],
        }

    def create_random_order(self):
        """Create one order and push it down a random path. Returns (order_number, final status)."""
        db = self.session_factory()
        try:
            user_id = random.choice(self.customers) if self.customers and random.random() < 0.7 else None
            order = orders_service.create_order(db, self.build_payload(), user_id=user_id)

            outcome = random.random()
            if outcome < 0.5:
                orders_service.confirm_payment(db, order, "Payment confirmed by order simulator")
            elif outcome < 0.6 and self.admin_id:
                admin = db.query(User).filter(User.user_id == self.admin_id).first()
                orders_service.update_order_status(db, order.order_id, OrderStatus.CANCELLED, admin,
                                                   "Cancelled by order simulator")
            # Otherwise left pending: Bakong orders expire through the sweep

            db.refresh(order)
            logger.info(
                f"Order {order.order_number}: {len(order.items)} item(s), total={order.total}, "
                f"payment={order.payment_method}, status={order.status}"
            )
            return order.order_number, order.status
        except ShopError as e:
            logger.warning(f"Order rejected: {e.message}")
            return None
        finally:
            db.close()

    def run_simulation(self, duration_minutes: float = 10, min_wait: float = 3, max_wait: float = 5,
                       max_orders: int = None) -> int:
        """Run order simulation for specified duration"""
        logger.info(f"Starting order simulation for {duration_minutes} minutes...")

        end_time = time.time() + (duration_minutes * 60)
        order_count = 0

        try:
            while time.time() < end_time:
                if self.create_random_order():
                    order_count += 1
                    logger.info(f"Total orders created: {order_count}")
                if max_orders is not None and order_count >= max_orders:
                    break
                if max_wait > 0:
                    time.sleep(random.uniform(min_wait, max_wait))
        except KeyboardInterrupt:
            logger.info("Simulation interrupted by user")

        logger.info(f"Simulation completed. Total orders created: {order_count}")
        return order_count


def main():
    import argparse

    setup_logging()
    parser = argparse.ArgumentParser(description="Simulate orders against the ShopEase database")
    parser.add_argument("-t", "--duration", default=10, type=float, help="Duration of the simulation in minutes")
    parser.add_argument("-n", "--max-orders", default=None, type=int, help="Stop after this many orders")
    args = parser.parse_args()

    simulator = OrderSimulator()
    if not simulator.products:
        logger.error("No products found. Please run seed_data.py first.")
        return

    simulator.run_simulation(duration_minutes=args.duration, max_orders=args.max_orders)


if __name__ == "__main__":
    main()
