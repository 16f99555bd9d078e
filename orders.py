# orders.py
"""Order placement, cancellation and the member-side order queries.

Callers pass the authenticated member id explicitly; nothing here reads the
request context.
"""
import logging
import secrets
import string
from decimal import Decimal

from core import (
    db, Book, CartItem, Order, OrderItem,
    BULK_DISCOUNT_MIN_QTY, BULK_DISCOUNT_RATE, LOYALTY_MIN_FULFILLED, LOYALTY_DISCOUNT_RATE,
    CLAIM_CODE_LENGTH, CENT, ORDER_PENDING, ORDER_CANCELLED, ORDER_FULFILLED,
    commit_or_rollback, utcnow,
)
from errors import BookNotFound, InvalidState, OrderNotFound, ValidationError
from pricing import effective_unit_price

logger = logging.getLogger(__name__)

CLAIM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_claim_code(length=CLAIM_CODE_LENGTH):
    return "".join(secrets.choice(CLAIM_CODE_ALPHABET) for _ in range(length))


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_items(items):
    """Validate (book_id, quantity) pairs and merge repeated books.

    Returns a dict of book_id -> quantity in first-seen order.
    """
    if not items:
        raise ValidationError("Order must contain at least one item.")
    merged = {}
    for book_id, qty in items:
        if not _is_int(book_id) or not _is_int(qty):
            raise ValidationError("Each item needs an integer bookId and quantity.")
        if qty < 1:
            raise ValidationError(f"Quantity for book {book_id} must be at least 1.")
        merged[book_id] = merged.get(book_id, 0) + qty
    return merged


def fulfilled_order_count(member_id):
    return Order.query.filter_by(member_id=member_id, status=ORDER_FULFILLED).count()


def order_totals(subtotal, total_quantity, fulfilled_count):
    """Apply the bulk then the loyalty discount.

    Returns (total, bulk_applied, loyalty_applied). The discounts compound:
    total = subtotal * 0.95 (5+ books) * 0.90 (10+ fulfilled orders).
    """
    total = Decimal(subtotal)
    bulk = total_quantity >= BULK_DISCOUNT_MIN_QTY
    if bulk:
        total = total * (1 - BULK_DISCOUNT_RATE)
    loyalty = fulfilled_count >= LOYALTY_MIN_FULFILLED
    if loyalty:
        total = total * (1 - LOYALTY_DISCOUNT_RATE)
    return total.quantize(CENT), bulk, loyalty


def place_order(member_id, items, now=None):
    now = now or utcnow()
    wanted = normalize_items(items)

    books = {b.id: b for b in Book.query.filter(Book.id.in_(list(wanted))).all()}
    missing = set(wanted) - set(books)
    if missing:
        raise BookNotFound(missing)

    subtotal = Decimal("0.00")
    lines = []
    for book_id, qty in wanted.items():
        price = effective_unit_price(books[book_id], now)
        subtotal += price * qty
        lines.append(OrderItem(book_id=book_id, price=price, qty=qty))

    total, bulk, loyalty = order_totals(
        subtotal, sum(wanted.values()), fulfilled_order_count(member_id)
    )
    order = Order(
        member_id=member_id,
        order_date=now,
        status=ORDER_PENDING,
        subtotal=subtotal,
        discount=subtotal - total,
        total_price=total,
        claim_code=generate_claim_code(),
        applied_five_percent_discount=bulk,
        applied_ten_percent_discount=loyalty,
        items=lines,
    )
    # header and lines go out in one commit
    db.session.add(order)
    commit_or_rollback(f"place order for member {member_id}")
    logger.info(
        "Order #%s placed by member %s: %d book(s), total %s (bulk=%s, loyalty=%s)",
        order.id, member_id, len(lines), total, bulk, loyalty,
    )
    return order


def clear_ordered_cart_items(member_id, book_ids):
    """Remove the member's cart entries for the given books; returns rows removed."""
    book_ids = list(book_ids)
    if not book_ids:
        return 0
    removed = CartItem.query.filter(
        CartItem.member_id == member_id, CartItem.book_id.in_(book_ids)
    ).delete(synchronize_session="fetch")
    commit_or_rollback(f"clear cart for member {member_id}")
    return removed


def cancel_order(member_id, order_id):
    order = Order.query.filter_by(id=order_id, member_id=member_id).first()
    if order is None:
        raise OrderNotFound()
    if order.status != ORDER_PENDING:
        raise InvalidState(order.id, order.status)
    # only moves the row if it is still Pending in the database
    updated = Order.query.filter_by(id=order_id, member_id=member_id, status=ORDER_PENDING).update(
        {"status": ORDER_CANCELLED}, synchronize_session="fetch"
    )
    if not updated:
        db.session.rollback()
        current = db.session.get(Order, order_id, populate_existing=True)
        raise InvalidState(order_id, current.status)
    commit_or_rollback(f"cancel order #{order_id}")
    logger.info("Order #%s cancelled by member %s", order_id, member_id)
    return db.session.get(Order, order_id)


def all_orders():
    """Every order, newest first, for the admin order-management view."""
    return Order.query.order_by(Order.order_date.desc(), Order.id.desc()).all()


def member_orders(member_id):
    return (
        Order.query.filter_by(member_id=member_id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )
