from flask import Blueprint, request, jsonify
from keystone.models.property import Property
from keystone.services import inventory
from keystone.utils.decorators import current_user, login_required, manager_required

properties_bp = Blueprint('properties', __name__)


@properties_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_properties():
    """Properties for the current role: managed, owned, or with vacancies"""
    query = inventory.properties_visible_to(current_user())

    status = request.args.get('status', '').strip()
    city = request.args.get('city', '').strip()
    if status and status != 'all':
        query = query.filter(Property.status == status)
    if city:
        query = query.filter(Property.city.ilike(f'%{city}%'))

    properties = query.order_by(Property.created_at.desc()).all()
    return jsonify({
        'properties': [p.to_dict() for p in properties],
        'total': len(properties)
    }), 200


@properties_bp.route('/<int:property_id>', methods=['GET'])
@login_required
def get_property(property_id):
    """Get single property"""
    user = current_user()
    property = inventory.get_property_for(property_id, user)
    return jsonify({'property': property.to_dict(include_people=not user.is_tenant())}), 200


@properties_bp.route('/', methods=['POST'], strict_slashes=False)
@manager_required
def create_property():
    """Create a property under the current manager"""
    property = inventory.create_property(current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Property created successfully',
        'property': property.to_dict()
    }), 201


@properties_bp.route('/<int:property_id>', methods=['PUT'])
@manager_required
def update_property(property_id):
    """Update property details"""
    property = inventory.update_property(property_id, current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Property updated successfully',
        'property': property.to_dict()
    }), 200


@properties_bp.route('/<int:property_id>', methods=['DELETE'])
@manager_required
def delete_property(property_id):
    """Delete property with its units"""
    inventory.delete_property(property_id, current_user())
    return jsonify({'message': 'Property deleted successfully'}), 200
