# auth.py
from functools import wraps

from flask import jsonify
from flask_jwt_extended import JWTManager, create_access_token, get_jwt, get_jwt_identity, jwt_required

ROLE_ADMIN = "Admin"
ROLE_STAFF = "Staff"
ROLE_MEMBER = "Member"

jwt = JWTManager()


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({"message": reason}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    return jsonify({"message": reason}), 401


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return jsonify({"message": "Token has expired"}), 401


def issue_token(account_id, role):
    """Mint an access token; login flows live outside this service."""
    return create_access_token(identity=str(account_id), additional_claims={"role": role})


def current_account_id():
    return int(get_jwt_identity())


def role_required(role):
    def wrapper(fn):
        @wraps(fn)
        @jwt_required()
        def decorated(*args, **kwargs):
            if get_jwt().get("role") != role:
                return jsonify({"message": f"{role} access required"}), 403
            return fn(*args, **kwargs)
        return decorated
    return wrapper
