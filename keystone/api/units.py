from flask import Blueprint, request, jsonify
from keystone.services import inventory
from keystone.utils.decorators import current_user, login_required, manager_required

units_bp = Blueprint('units', __name__)


@units_bp.route('/property/<int:property_id>', methods=['GET'])
@login_required
def get_property_units(property_id):
    """All units of a property"""
    user = current_user()
    units = inventory.list_units(property_id, user)
    if user.is_tenant():
        units = [u for u in units if u.status == 'vacant']
    return jsonify({'units': [u.to_dict(include_tenant=not user.is_tenant()) for u in units]}), 200


@units_bp.route('/property/<int:property_id>/vacant', methods=['GET'])
@login_required
def get_vacant_units(property_id):
    """Vacant units of a property, for applications and invitations"""
    units = inventory.list_vacant_units(property_id)
    return jsonify({'units': [u.to_dict() for u in units]}), 200


@units_bp.route('/browse', methods=['GET'])
def browse_units():
    """Public listing of every vacant unit"""
    units = inventory.browse_vacant_units()
    return jsonify({'units': [u.to_dict(include_property=True) for u in units]}), 200


@units_bp.route('/<int:unit_id>', methods=['GET'])
@login_required
def get_unit(unit_id):
    user = current_user()
    unit = inventory.get_unit(unit_id)
    inventory.get_property_for(unit.property_id, user)
    return jsonify({'unit': unit.to_dict(include_property=True, include_tenant=not user.is_tenant())}), 200


@units_bp.route('/', methods=['POST'], strict_slashes=False)
@manager_required
def create_unit():
    """Add a unit to one of the manager's properties"""
    unit = inventory.create_unit(current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Unit created successfully',
        'unit': unit.to_dict()
    }), 201


@units_bp.route('/<int:unit_id>', methods=['PUT'])
@manager_required
def update_unit(unit_id):
    unit = inventory.update_unit(unit_id, current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Unit updated successfully',
        'unit': unit.to_dict()
    }), 200


@units_bp.route('/<int:unit_id>', methods=['DELETE'])
@manager_required
def delete_unit(unit_id):
    inventory.delete_unit(unit_id, current_user())
    return jsonify({'message': 'Unit deleted successfully'}), 200
