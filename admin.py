# admin.py
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify

from auth import ROLE_ADMIN, role_required
from core import db, Book, commit_or_rollback
from errors import ValidationError
from orders import all_orders
from shop import book_summary, json_body, order_summary

admin_bp = Blueprint("admin", __name__)

TEXT_FIELDS = {
    "title": "title",
    "author": "author",
    "isbn": "isbn",
    "genre": "genre",
    "format": "format",
    "publisher": "publisher",
    "imageUrl": "image",
}


def parse_decimal(value, field):
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}.")
    # NaN and Infinity parse but cannot be compared or stored
    if not parsed.is_finite():
        raise ValidationError(f"Invalid {field}.")
    return parsed


def parse_timestamp(value, field):
    """ISO-8601 string -> naive UTC datetime; empty means unset."""
    if value in (None, ""):
        return None
    try:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid {field}; expected an ISO-8601 timestamp.")
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def apply_book_fields(bk, data):
    for key, attr in TEXT_FIELDS.items():
        if key in data:
            value = data.get(key)
            setattr(bk, attr, str(value).strip() or None if value is not None else None)
    if "price" in data:
        price = parse_decimal(data.get("price"), "price")
        if price <= 0:
            raise ValidationError("Price must be greater than zero.")
        bk.price = price
    if "stockQuantity" in data:
        stock = data.get("stockQuantity")
        if not isinstance(stock, int) or isinstance(stock, bool) or stock < 0:
            raise ValidationError("stockQuantity must be a non-negative integer.")
        bk.stock_quantity = stock
    if not bk.title or not bk.author or bk.price is None:
        raise ValidationError("Please provide title, author, and price.")


@admin_bp.route("/books")
@role_required(ROLE_ADMIN)
def admin_books():
    books = Book.query.order_by(Book.genre, Book.title).all()
    return jsonify([book_summary(b) for b in books])


@admin_bp.route("/orders")
@role_required(ROLE_ADMIN)
def admin_orders():
    return jsonify([order_summary(o) for o in all_orders()])


@admin_bp.route("/books", methods=["POST"])
@role_required(ROLE_ADMIN)
def admin_new():
    bk = Book(stock_quantity=0, is_on_sale=False)
    apply_book_fields(bk, json_body())
    db.session.add(bk)
    commit_or_rollback("create book")
    return jsonify(book_summary(bk)), 201


@admin_bp.route("/books/<int:book_id>", methods=["PUT"])
@role_required(ROLE_ADMIN)
def admin_edit(book_id):
    bk = db.get_or_404(Book, book_id, description="Book not found")
    apply_book_fields(bk, json_body())
    commit_or_rollback(f"update book {book_id}")
    return jsonify(book_summary(bk))


@admin_bp.route("/books/<int:book_id>/sale", methods=["PUT"])
@role_required(ROLE_ADMIN)
def admin_sale(book_id):
    bk = db.get_or_404(Book, book_id, description="Book not found")
    data = json_body()
    on_sale = data.get("isOnSale", False)
    if not isinstance(on_sale, bool):
        raise ValidationError("isOnSale must be true or false.")
    percent = None
    if on_sale:
        percent = parse_decimal(data.get("discountPercent"), "discountPercent")
        if percent < 0 or percent > 100:
            raise ValidationError("discountPercent must be between 0 and 100.")
    start = parse_timestamp(data.get("discountStart"), "discountStart")
    end = parse_timestamp(data.get("discountEnd"), "discountEnd")
    if start and end and start > end:
        raise ValidationError("discountStart must not be after discountEnd.")
    bk.is_on_sale = on_sale
    bk.discount_percent = percent
    bk.discount_start = start
    bk.discount_end = end
    commit_or_rollback(f"update sale for book {book_id}")
    return jsonify(book_summary(bk))


@admin_bp.route("/books/<int:book_id>", methods=["DELETE"])
@role_required(ROLE_ADMIN)
def admin_delete(book_id):
    bk = db.get_or_404(Book, book_id, description="Book not found")
    db.session.delete(bk)
    commit_or_rollback(f"delete book {book_id}")
    return jsonify({"message": "Book deleted."})
