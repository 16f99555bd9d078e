# core.py
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from auth import jwt
from errors import BookstoreError, PersistenceError

# --- DB handle (imported by blueprints and services) ---
db = SQLAlchemy()

logger = logging.getLogger(__name__)

# --- Constants shared across services ---
CENT = Decimal("0.01")
BULK_DISCOUNT_MIN_QTY = 5           # books in one order
BULK_DISCOUNT_RATE = Decimal("0.05")
LOYALTY_MIN_FULFILLED = 10          # previously fulfilled orders
LOYALTY_DISCOUNT_RATE = Decimal("0.10")
CLAIM_CODE_LENGTH = 12

ORDER_PENDING = "Pending"
ORDER_CANCELLED = "Cancelled"
ORDER_FULFILLED = "Fulfilled"


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def money(value):
    return Decimal(str(value)).quantize(CENT)


def commit_or_rollback(action):
    """Commit the current session; on failure roll back and raise PersistenceError."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to %s", action)
        raise PersistenceError(f"Could not {action}; nothing was saved.") from exc


# --- Models ---
class Member(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)


class Staff(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    position = db.Column(db.String(80), nullable=False, default="Clerk")


class Book(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    author = db.Column(db.String(200), nullable=False)
    isbn = db.Column(db.String(13), nullable=True)
    genre = db.Column(db.String(50), nullable=True)
    format = db.Column(db.String(50), nullable=True)
    publisher = db.Column(db.String(200), nullable=True)
    image = db.Column(db.String(200), nullable=True)  # url of the uploaded cover
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_on_sale = db.Column(db.Boolean, nullable=False, default=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=True)
    discount_start = db.Column(db.DateTime, nullable=True)
    discount_end = db.Column(db.DateTime, nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)


class CartItem(db.Model):
    __table_args__ = (db.UniqueConstraint("member_id", "book_id"),)

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("member.id"), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("book.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    book = db.relationship("Book")


class Order(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("member.id"), nullable=False)
    order_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default=ORDER_PENDING)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    claim_code = db.Column(db.String(32), unique=True, nullable=False)
    applied_five_percent_discount = db.Column(db.Boolean, nullable=False, default=False)
    applied_ten_percent_discount = db.Column(db.Boolean, nullable=False, default=False)

    items = db.relationship(
        "OrderItem", backref="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_id_fk = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("book.id"), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)  # unit price after book-level sale
    qty = db.Column(db.Integer, nullable=False)

    book = db.relationship("Book")


class ProcessedOrder(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # one fulfillment per order, enforced by the database
    order_id_fk = db.Column(db.Integer, db.ForeignKey("order.id"), unique=True, nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    processed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    order = db.relationship(
        "Order", backref=db.backref("fulfillment", uselist=False, cascade="all, delete-orphan")
    )


def seed_if_empty():
    """Seed initial books on first run."""
    if Book.query.count() > 0:
        return
    books = [
        {"title": "Where the Wild Things Are", "author": "Maurice Sendak", "genre": "Children's",
         "format": "Hardcover", "price": Decimal("7.99"), "stock_quantity": 12},
        {"title": "The Very Hungry Caterpillar", "author": "Eric Carle", "genre": "Children's",
         "format": "Board Book", "price": Decimal("7.99"), "stock_quantity": 20},
        {"title": "The Phantom Tollbooth", "author": "Norton Juster", "genre": "Fiction",
         "format": "Paperback", "price": Decimal("8.99"), "stock_quantity": 8,
         "is_on_sale": True, "discount_percent": Decimal("10")},
        {"title": "Coraline", "author": "Neil Gaiman", "genre": "Fiction",
         "format": "Paperback", "price": Decimal("8.99"), "stock_quantity": 15},
        {"title": "Sapiens", "author": "Yuval Noah Harari", "genre": "Non-Fiction",
         "format": "Hardcover", "price": Decimal("9.99"), "stock_quantity": 10},
        {"title": "Atomic Habits", "author": "James Clear", "genre": "Non-Fiction",
         "format": "Hardcover", "price": Decimal("9.99"), "stock_quantity": 10,
         "is_on_sale": True, "discount_percent": Decimal("20")},
    ]
    for b in books:
        db.session.add(Book(**b))
    db.session.commit()
    logger.info("Seeded catalog with %d books", len(books))


def configure_logging(app):
    level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger().setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(BookstoreError)
    def handle_bookstore_error(err):
        return jsonify({"message": str(err), "error": err.kind}), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"message": err.description}), err.code


def create_app(config=None):
    app = Flask(__name__)

    # --- Config: defaults, then BOOKHEAVEN_* environment, then explicit overrides ---
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    DB_PATH = os.path.join(BASE_DIR, "bookheaven.db")
    app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{DB_PATH}"
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["JWT_SECRET_KEY"] = "dev-secret-change-me-bookheaven-signing-key"
    app.config["SEED_CATALOG"] = True
    app.config["LOG_LEVEL"] = "INFO"
    app.config.from_prefixed_env("BOOKHEAVEN")
    if config:
        app.config.update(config)

    configure_logging(app)
    db.init_app(app)
    jwt.init_app(app)

    # Register blueprints (import inside to avoid circular imports)
    from shop import shop_bp
    from admin import admin_bp
    from staff import staff_bp
    app.register_blueprint(shop_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(staff_bp, url_prefix="/api/staff")
    register_error_handlers(app)

    # Ensure tables exist at startup
    with app.app_context():
        db.create_all()
        if app.config["SEED_CATALOG"]:
            seed_if_empty()

    return app
