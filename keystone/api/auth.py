from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token
from keystone import db, limiter
from keystone.models.user import User
from keystone.utils.decorators import current_user, login_required
from keystone.utils.validators import validate_email, validate_password
from keystone.utils.sanitizers import sanitize_string
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

# Homeowners only join by invitation
SELF_SERVICE_ROLES = ('property_manager', 'tenant')


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("10 per hour")
def register():
    """Register a property manager or tenant account"""
    data = request.get_json() or {}

    email = sanitize_string(data.get('email', '')).lower()
    password = data.get('password', '')
    name = sanitize_string(data.get('name', ''))
    phone = sanitize_string(data.get('phone', ''))
    role = data.get('role', 'tenant')

    if not email or not password or not name or not phone:
        return jsonify({'message': 'All fields are required'}), 400

    if not validate_email(email):
        return jsonify({'message': 'Invalid email format'}), 400

    if not validate_password(password):
        return jsonify({'message': 'Password must be at least 8 characters long'}), 400

    if role not in SELF_SERVICE_ROLES:
        return jsonify({'message': 'Role must be property_manager or tenant'}), 400

    existing = User.query.filter_by(email=email).first()
    if existing:
        if not existing.is_active and existing.invitation_token:
            return jsonify({'message': 'This email has a pending invitation. Use the link in your invitation email.'}), 409
        return jsonify({'message': 'Email already registered'}), 409

    user = User(
        email=email,
        name=name,
        phone=phone,
        address=sanitize_string(data.get('address', '')) or None,
        role=role,
        is_active=True
    )
    user.set_password(password)

    db.session.add(user)
    db.session.commit()
    logger.info("Registered %s account %s", role, user.id)

    return jsonify({
        'message': 'Registration successful',
        'token': create_access_token(identity=str(user.id)),
        'user': user.to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("20 per hour")
def login():
    """Login user"""
    data = request.get_json() or {}

    email = sanitize_string(data.get('email', '')).lower()
    password = data.get('password', '')

    if not email or not password:
        return jsonify({'message': 'Email and password are required'}), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({'message': 'Invalid email or password'}), 401

    if not user.is_active:
        return jsonify({'message': 'Account is not active. Accept your invitation first.'}), 403

    return jsonify({
        'message': 'Login successful',
        'token': create_access_token(identity=str(user.id)),
        'user': user.to_dict()
    }), 200


@auth_bp.route('/me', methods=['GET'])
@login_required
def get_current_user():
    """Get current user details"""
    return jsonify({'user': current_user().to_dict()}), 200
