from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from keystone import db
from keystone.models.user import User


def current_user():
    """User loaded by the last role check of this request"""
    return g.get('current_user')


def role_required(*roles):
    """Require a valid JWT for an active account, optionally in one of ``roles``"""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = db.session.get(User, int(get_jwt_identity()))

            if not user:
                return jsonify({'message': 'User not found'}), 404

            if not user.is_active:
                return jsonify({'message': 'Account is not active'}), 401

            if roles and user.role not in roles:
                return jsonify({'message': 'Access denied for your role'}), 403

            g.current_user = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def login_required(fn):
    """Any active account"""
    return role_required()(fn)


manager_required = role_required('property_manager')
tenant_required = role_required('tenant')
manager_or_homeowner_required = role_required('property_manager', 'homeowner')
