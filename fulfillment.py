# fulfillment.py
"""Staff-side fulfillment: hand an order over against its claim code."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core import db, Order, ProcessedOrder, ORDER_CANCELLED, ORDER_FULFILLED, ORDER_PENDING, utcnow
from errors import AlreadyFulfilled, OrderNotFound, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class FulfillmentResult:
    order_id: int
    member_id: int
    staff_id: Optional[int]
    processed_at: datetime

    @property
    def message(self):
        return f"Order #{self.order_id} fulfilled successfully."


def _already_processed(order_id):
    return ProcessedOrder.query.filter_by(order_id_fk=order_id).first() is not None


def fulfill_order(claim_code, staff_id=None, now=None):
    if claim_code is not None and not isinstance(claim_code, str):
        raise ValidationError("Claim code must be a string.")
    code = (claim_code or "").strip().upper()
    if not code:
        raise ValidationError("Claim code is required.")

    order = Order.query.filter_by(claim_code=code).first()
    if order is None or order.status == ORDER_CANCELLED:
        logger.warning("Fulfillment rejected: no open order for claim code %s", code)
        raise OrderNotFound("Order not found or has been cancelled.")

    order_id, member_id = order.id, order.member_id
    if order.status == ORDER_FULFILLED or _already_processed(order_id):
        logger.warning("Fulfillment rejected: order #%s already fulfilled", order_id)
        raise AlreadyFulfilled(order_id)

    processed_at = now or utcnow()
    try:
        # a cancel committed since the read above leaves nothing to move
        moved = Order.query.filter_by(id=order_id, status=ORDER_PENDING).update(
            {"status": ORDER_FULFILLED}, synchronize_session="fetch"
        )
        if not moved:
            db.session.rollback()
            logger.warning("Fulfillment rejected: order #%s left Pending before fulfillment", order_id)
            raise OrderNotFound("Order not found or has been cancelled.")
        db.session.add(ProcessedOrder(order_id_fk=order_id, staff_id=staff_id, processed_at=processed_at))
        db.session.commit()
    except IntegrityError as exc:
        # a concurrent fulfillment won the unique index on order_id_fk
        db.session.rollback()
        logger.warning("Fulfillment race lost for order #%s", order_id)
        raise AlreadyFulfilled(order_id) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to fulfill order #%s", order_id)
        raise PersistenceError(f"Could not fulfill order #{order_id}; nothing was saved.") from exc

    logger.info("Order #%s fulfilled by staff %s", order_id, staff_id)
    return FulfillmentResult(order_id, member_id, staff_id, processed_at)


def fulfilled_orders():
    return Order.query.filter_by(status=ORDER_FULFILLED).order_by(Order.id.desc()).all()
