# staff.py
from flask import Blueprint, jsonify

from auth import ROLE_STAFF, current_account_id, role_required
from fulfillment import fulfill_order, fulfilled_orders
from shop import json_body, order_summary

staff_bp = Blueprint("staff", __name__)


@staff_bp.route("/fulfill-order", methods=["POST"])
@role_required(ROLE_STAFF)
def fulfill():
    result = fulfill_order(json_body().get("claimCode"), staff_id=current_account_id())
    return jsonify({
        "message": result.message,
        "orderId": result.order_id,
        "processedAt": result.processed_at.isoformat(),
    })


@staff_bp.route("/fulfilled-orders")
@role_required(ROLE_STAFF)
def list_fulfilled():
    out = []
    for order in fulfilled_orders():
        summary = order_summary(order)
        summary["fulfilledAt"] = order.fulfillment.processed_at.isoformat() if order.fulfillment else None
        summary["fulfilledBy"] = order.fulfillment.staff_id if order.fulfillment else None
        out.append(summary)
    return jsonify(out)
