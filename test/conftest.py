import os

# Must be set before shopease is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-1234"
os.environ["ENVIRONMENT"] = "test"
os.environ["ORDER_SWEEP_ENABLED"] = "false"
os.environ["BAKONG_MERCHANT_ID"] = "shopease@aclb"
os.environ["BAKONG_ACCESS_TOKEN"] = "test-access-token"
os.environ["BAKONG_API_SECRET"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shopease.api.deps import get_payment_provider
from shopease.main import app
from shopease.models import Category, Product, ProductStatus, User, UserRole
from shopease.services.bakong_service import BakongService, PaymentCheck
from shopease.utils.database import Base, SessionLocal, engine
from shopease.utils.security import create_token, hash_password


class FakeBakong(BakongService):
    """Real QR generation, canned payment checks"""

    def __init__(self):
        self.paid = False
        self.checked = []

    def verify_payment(self, md5: str) -> PaymentCheck:
        self.checked.append(md5)
        if self.paid:
            return PaymentCheck(paid=True, transaction_hash="txn-hash-123", data={"hash": "txn-hash-123"})
        return PaymentCheck(paid=False)


@pytest.fixture(autouse=True)
def tables():
    import shopease.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def provider():
    return FakeBakong()


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_payment_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email, role=UserRole.USER, password="Passw0rd!", **kwargs):
    user = User(email=email, password_hash=hash_password(password), role=role, **kwargs)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def customer(db):
    return _make_user(db, "customer@example.com")


@pytest.fixture
def other_customer(db):
    return _make_user(db, "other@example.com")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user.user_id, user.role)}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def leaf_category(db):
    parent = Category(name="Football")
    db.add(parent)
    db.flush()
    leaf = Category(name="Boots", parent_category_id=parent.category_id)
    db.add(leaf)
    db.commit()
    db.refresh(leaf)
    return leaf


@pytest.fixture
def make_product(db, leaf_category):
    def _make(name="Striker Boot", price="19.99", stock=10, status=ProductStatus.ACTIVE, **kwargs):
        product = Product(
            name=name,
            description=f"{name} description",
            price=Decimal(price),
            stock=stock,
            status=status,
            images=["/uploads/products/boot.jpg"],
            category_id=leaf_category.category_id,
            **kwargs,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


def order_payload(*items, payment_method="Cash on Delivery", **overrides):
    payload = {
        "customer_name": "Sok Dara",
        "customer_phone": "+85512345678",
        "customer_address": "St. 271, House 12",
        "customer_city": "Phnom Penh",
        "customer_district": "Toul Kork",
        "payment_method": payment_method,
        "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
    }
    payload.update(overrides)
    return payload
