# shop.py
import logging
from decimal import Decimal

from flask import Blueprint, jsonify, request

from auth import ROLE_MEMBER, current_account_id, role_required
from core import db, Book, CartItem, commit_or_rollback, money
from errors import BookNotFound, PersistenceError, ValidationError
from orders import cancel_order, clear_ordered_cart_items, member_orders, place_order
from pricing import effective_unit_price, sale_active

shop_bp = Blueprint("shop", __name__)

logger = logging.getLogger(__name__)


# --- Serializers (shared with the staff blueprint) ---
def book_summary(book):
    return {
        "bookId": book.id,
        "title": book.title,
        "author": book.author,
        "isbn": book.isbn,
        "genre": book.genre,
        "format": book.format,
        "publisher": book.publisher,
        "imageUrl": book.image,
        "price": str(money(book.price)),
        "isOnSale": bool(book.is_on_sale),
        "discountPercent": str(book.discount_percent) if book.discount_percent is not None else None,
        "discountStart": book.discount_start.isoformat() if book.discount_start else None,
        "discountEnd": book.discount_end.isoformat() if book.discount_end else None,
        "saleActive": sale_active(book),
        "effectivePrice": str(effective_unit_price(book)),
        "stockQuantity": book.stock_quantity,
    }


def order_summary(order):
    return {
        "orderId": order.id,
        "memberId": order.member_id,
        "orderDate": order.order_date.isoformat(),
        "status": order.status,
        "claimCode": order.claim_code,
        "subtotal": str(money(order.subtotal)),
        "discount": str(money(order.discount)),
        "totalPrice": str(money(order.total_price)),
        "appliedFivePercentDiscount": order.applied_five_percent_discount,
        "appliedTenPercentDiscount": order.applied_ten_percent_discount,
        "items": [
            {
                "bookId": it.book_id,
                "title": it.book.title if it.book else None,
                "author": it.book.author if it.book else None,
                "price": str(money(it.price)),
                "quantity": it.qty,
            }
            for it in order.items
        ],
    }


# --- Helpers (storefront-specific) ---
def json_body():
    """Request body as a JSON object; anything else is a validation error."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def parse_order_items(payload):
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise ValidationError("Request body must contain an 'items' list.")
    items = []
    for entry in payload["items"]:
        if not isinstance(entry, dict):
            raise ValidationError("Each item needs a bookId and quantity.")
        items.append((entry.get("bookId"), entry.get("quantity")))
    return items


def cart_items(member_id):
    items = []
    subtotal = Decimal("0.00")
    for entry in CartItem.query.filter_by(member_id=member_id).order_by(CartItem.id).all():
        if not entry.book:
            continue
        price = effective_unit_price(entry.book)
        line_total = price * entry.quantity
        subtotal += line_total
        items.append({
            "bookId": entry.book_id,
            "title": entry.book.title,
            "author": entry.book.author,
            "imageUrl": entry.book.image,
            "isOnSale": bool(entry.book.is_on_sale),
            "price": str(price),
            "quantity": entry.quantity,
            "lineTotal": str(line_total),
        })
    return items, subtotal


# --- Routes: Catalog ---
@shop_bp.route("/books")
def list_books():
    books = Book.query.order_by(Book.title).all()
    return jsonify([book_summary(b) for b in books])


@shop_bp.route("/books/<int:book_id>")
def get_book(book_id):
    book = db.get_or_404(Book, book_id, description="Book not found")
    return jsonify(book_summary(book))


# --- Routes: Cart ---
@shop_bp.route("/cart")
@role_required(ROLE_MEMBER)
def cart_view():
    items, subtotal = cart_items(current_account_id())
    return jsonify({"items": items, "subtotal": str(money(subtotal))})


@shop_bp.route("/cart", methods=["POST"])
@role_required(ROLE_MEMBER)
def update_cart():
    member_id = current_account_id()
    data = json_body()
    book_id = data.get("bookId")
    qty = data.get("quantity")
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (book_id, qty)):
        raise ValidationError("bookId and quantity must be integers.")

    existing = CartItem.query.filter_by(member_id=member_id, book_id=book_id).first()
    if qty <= 0:
        if existing is not None:
            db.session.delete(existing)
            commit_or_rollback(f"update cart for member {member_id}")
        return jsonify({"message": "Item removed."})

    if db.session.get(Book, book_id) is None:
        raise BookNotFound([book_id])
    if existing is None:
        db.session.add(CartItem(member_id=member_id, book_id=book_id, quantity=qty))
    else:
        existing.quantity = qty
    commit_or_rollback(f"update cart for member {member_id}")
    return jsonify({"message": "Cart updated.", "bookId": book_id, "quantity": qty})


@shop_bp.route("/cart/<int:book_id>", methods=["DELETE"])
@role_required(ROLE_MEMBER)
def remove_from_cart(book_id):
    member_id = current_account_id()
    existing = CartItem.query.filter_by(member_id=member_id, book_id=book_id).first()
    if existing is not None:
        db.session.delete(existing)
        commit_or_rollback(f"update cart for member {member_id}")
    return jsonify({"message": "Item removed."})


# --- Routes: Orders ---
@shop_bp.route("/orders", methods=["POST"])
@role_required(ROLE_MEMBER)
def create_order():
    member_id = current_account_id()
    order = place_order(member_id, parse_order_items(request.get_json(silent=True)))
    try:
        clear_ordered_cart_items(member_id, [it.book_id for it in order.items])
    except PersistenceError:
        # the order itself is committed; a stale cart is recoverable by the member
        logger.warning("Order #%s placed but cart for member %s was not cleared", order.id, member_id)
    return jsonify({"message": "Order created successfully", **order_summary(order)})


@shop_bp.route("/orders/cancel/<int:order_id>", methods=["POST"])
@role_required(ROLE_MEMBER)
def cancel(order_id):
    order = cancel_order(current_account_id(), order_id)
    return jsonify({"message": "Order cancelled successfully", "orderId": order.id, "status": order.status})


@shop_bp.route("/orders/my-orders")
@role_required(ROLE_MEMBER)
def my_orders():
    return jsonify([order_summary(o) for o in member_orders(current_account_id())])
