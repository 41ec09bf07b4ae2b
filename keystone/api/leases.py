from flask import Blueprint, request, jsonify
from keystone.services import leases as lease_service
from keystone.utils.decorators import current_user, login_required, manager_or_homeowner_required

leases_bp = Blueprint('leases', __name__)


@leases_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_leases():
    leases = lease_service.list_leases_for(current_user())
    return jsonify({'leases': [lease.to_dict(include_parties=True) for lease in leases]}), 200


@leases_bp.route('/<int:lease_id>', methods=['GET'])
@login_required
def get_lease(lease_id):
    lease = lease_service.get_lease_for(lease_id, current_user())
    return jsonify({'lease': lease.to_dict(include_parties=True)}), 200


@leases_bp.route('/property/<int:property_id>/tenants', methods=['GET'])
@manager_or_homeowner_required
def get_property_tenants(property_id):
    """Tenancies of a property, current first"""
    leases = lease_service.list_property_leases(property_id, current_user())
    leases.sort(key=lambda lease: lease.status != 'active')
    return jsonify({'leases': [lease.to_dict(include_parties=True) for lease in leases]}), 200


@leases_bp.route('/<int:lease_id>/terminate', methods=['PUT'])
@manager_or_homeowner_required
def terminate_lease(lease_id):
    """End an active lease and free its unit"""
    data = request.get_json() or {}
    lease = lease_service.terminate_lease(lease_id, current_user(), data.get('reason'))
    return jsonify({
        'message': 'Lease terminated',
        'lease': lease.to_dict()
    }), 200
