"""Pytest fixtures for BookHeaven tests."""
from decimal import Decimal

import pytest

from auth import ROLE_ADMIN, ROLE_MEMBER, ROLE_STAFF, issue_token
from core import create_app, db, Book, Member, Order, Staff
from orders import generate_claim_code


@pytest.fixture
def app():
    """App on an in-memory database; tests run inside its app context."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SEED_CATALOG": False,
        "JWT_SECRET_KEY": "test-secret-key-for-bookheaven-tests-only",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def member(app):
    m = Member(full_name="Ada Reader", email="ada@example.com")
    db.session.add(m)
    db.session.commit()
    return m


@pytest.fixture
def other_member(app):
    m = Member(full_name="Bo Browser", email="bo@example.com")
    db.session.add(m)
    db.session.commit()
    return m


@pytest.fixture
def staff_member(app):
    s = Staff(full_name="Sam Counter", email="sam@example.com", position="Clerk")
    db.session.add(s)
    db.session.commit()
    return s


@pytest.fixture
def make_book(app):
    """Factory for catalog entries; price is a string so tests read like receipts."""
    counter = {"n": 0}

    def _make(price="20.00", **kwargs):
        counter["n"] += 1
        fields = {
            "title": f"Book {counter['n']}",
            "author": "Test Author",
            "price": Decimal(price),
            "is_on_sale": False,
            "stock_quantity": 10,
        }
        fields.update(kwargs)
        book = Book(**fields)
        db.session.add(book)
        db.session.commit()
        return book

    return _make


@pytest.fixture
def add_orders(app):
    """Insert finished orders directly, e.g. to build up a loyalty history."""

    def _add(member_id, status, count):
        for _ in range(count):
            db.session.add(Order(
                member_id=member_id,
                status=status,
                subtotal=Decimal("10.00"),
                total_price=Decimal("10.00"),
                claim_code=generate_claim_code(),
            ))
        db.session.commit()

    return _add


@pytest.fixture
def token_for(app):
    """Authorization headers for an account id and role."""

    def _headers(account_id, role):
        return {"Authorization": f"Bearer {issue_token(account_id, role)}"}

    return _headers


@pytest.fixture
def member_headers(member, token_for):
    return token_for(member.id, ROLE_MEMBER)


@pytest.fixture
def staff_headers(staff_member, token_for):
    return token_for(staff_member.id, ROLE_STAFF)


@pytest.fixture
def admin_headers(token_for):
    return token_for(1, ROLE_ADMIN)
