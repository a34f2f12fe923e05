# tests/conftest.py
"""
Pytest fixtures shared by the service and API tests.

A throwaway SQLite file is selected through DATABASE_URL before the
package is imported, so the engine built in apothecary.database points at it.
"""

import os
import tempfile
from uuid import uuid4

_TEST_DB_DIR = tempfile.mkdtemp(prefix="apothecary-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["STRUCTURED_LOGS_ENABLED"] = "false"

import pytest

from apothecary.database import Base, SessionLocal, engine
from apothecary.models import (
    CompoundPricingRule,
    HerbSafetyRule,
    Product,
    ProductCategory,
    User,
    UserRole,
)
from apothecary.observability.metrics import reset_metrics


@pytest.fixture
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_metrics()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app(db_session):
    from apothecary.main import app as flask_app

    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def login(client):
    """Put a user id into the Flask session, the way the session gate expects."""

    def _login(user: User) -> None:
        with client.session_transaction() as sess:
            sess["user_id"] = user.userID

    return _login


@pytest.fixture
def make_user(db_session):
    def _make_user(role: UserRole = UserRole.CUSTOMER, username: str | None = None) -> User:
        suffix = uuid4().hex[:8]
        user = User(
            username=username or f"{role.value}_{suffix}",
            email=f"{role.value}_{suffix}@example.com",
            full_name=f"Test {role.value.title()}",
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(db_session):
    def _make_product(
        name: str,
        price: float = 20.00,
        volume_ml: int = 100,
        stock: int = 25,
        slug: str | None = None,
        category: ProductCategory = ProductCategory.NERVOUS,
        is_active: bool = True,
        description: str | None = None,
    ) -> Product:
        product = Product(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            description=description or f"{name} tincture",
            category=category,
            price=price,
            volume_ml=volume_ml,
            stock=stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make_product


@pytest.fixture
def pricing_rules(db_session):
    """Tier 1-3 pricing rules with distinct ranges and margins."""
    rules = [
        CompoundPricingRule(tier=1, min_price_per_100ml=20, max_price_per_100ml=60, default_margin=0.25),
        CompoundPricingRule(tier=2, min_price_per_100ml=40, max_price_per_100ml=90, default_margin=0.35),
        CompoundPricingRule(tier=3, min_price_per_100ml=60, max_price_per_100ml=150, default_margin=0.5),
    ]
    db_session.add_all(rules)
    db_session.commit()
    return {rule.tier: rule for rule in rules}


@pytest.fixture
def herbs(make_product):
    """A small herb catalog keyed by slug."""
    return {
        "lemon-balm": make_product("Lemon Balm", price=20.00),
        "ginger-root": make_product("Ginger Root", price=30.00, category=ProductCategory.DIGESTIVE),
        "vitex-berry": make_product("Vitex Berry", price=40.00, category=ProductCategory.REPRODUCTIVE),
        "ashwagandha-root": make_product("Ashwagandha Root", price=36.00),
        "turmeric-root": make_product("Turmeric Root", price=24.00, category=ProductCategory.MUSCULOSKELETAL),
    }


@pytest.fixture
def herb_safety_rule(db_session):
    def _make_rule(product: Product, **fields) -> HerbSafetyRule:
        rule = HerbSafetyRule(productID=product.productID, **fields)
        db_session.add(rule)
        db_session.commit()
        return rule

    return _make_rule
