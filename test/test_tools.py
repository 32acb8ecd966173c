from shopease.models import Category, Order, OrderStatus, Product, User, UserRole
from shopease.seed_data import DataGenerator
from shopease.simulate_orders import OrderSimulator
from shopease.utils.database import SessionLocal
from shopease.utils.init_db import DEFAULT_CATEGORIES, seed_admin, seed_categories
from shopease.utils.security import verify_password


def test_seed_admin_and_categories(db):
    admin = seed_admin(db, "Root@Example.com", "Adm1nPass")
    assert admin.email == "root@example.com"
    assert admin.role == UserRole.ADMIN
    assert verify_password("Adm1nPass", admin.password_hash)
    assert seed_admin(db, "root@example.com", "other").user_id == admin.user_id

    assert seed_categories(db) == len(DEFAULT_CATEGORIES)
    assert seed_categories(db) == 0
    assert db.query(Category).filter(Category.parent_category_id.is_(None)).count() == len(DEFAULT_CATEGORIES)


def test_data_generator(db):
    with DataGenerator(SessionLocal) as generator:
        summary = generator.generate_all(categories=2, products=15, customers=6)
        assert summary == {"categories": 6, "products": 15, "customers": 6}

        # Re-running reuses the category tree
        assert len(generator.generate_categories(2)) == 6

    assert db.query(Category).count() == 8
    products = db.query(Product).all()
    assert len(products) == 15
    assert all(p.category.parent_category_id is not None for p in products)
    assert all(p.price > 0 for p in products)
    assert db.query(User).filter(User.role == UserRole.USER).count() == 6


def test_data_generator_clear(db):
    with DataGenerator(SessionLocal) as generator:
        generator.generate_all(categories=1, products=5, customers=3)
        generator.clear_all_data()

    assert db.query(Product).count() == 0
    assert db.query(Category).count() == 0
    assert db.query(User).count() == 0


def test_order_simulator(db, admin, make_product):
    for i in range(3):
        make_product(name=f"Sim Product {i}", stock=100)
    with DataGenerator(SessionLocal) as generator:
        generator.generate_customers(5)

    simulator = OrderSimulator(SessionLocal)
    assert len(simulator.products) == 3
    assert len(simulator.customers) == 5
    assert simulator.admin_id == admin.user_id

    created = simulator.run_simulation(duration_minutes=1, min_wait=0, max_wait=0, max_orders=4)
    assert created == 4

    orders = db.query(Order).all()
    assert len(orders) == 4
    assert {o.status for o in orders} <= {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.CANCELLED}

    # Stock only stays deducted for orders still holding it
    db.expire_all()
    held = sum(
        item.quantity for o in orders if o.status != OrderStatus.CANCELLED for item in o.items
    )
    assert sum(p.stock for p in db.query(Product).all()) == 300 - held
