from flask import Blueprint, request, jsonify
from keystone.services import maintenance
from keystone.utils.decorators import (
    current_user, login_required, manager_or_homeowner_required, tenant_required,
)

maintenance_bp = Blueprint('maintenance', __name__)


@maintenance_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_requests():
    requests = maintenance.list_requests_for(current_user(), status=request.args.get('status'))
    return jsonify({'requests': [r.to_dict() for r in requests]}), 200


@maintenance_bp.route('/<int:request_id>', methods=['GET'])
@login_required
def get_request(request_id):
    maintenance_request = maintenance.get_request_for(request_id, current_user())
    return jsonify({'request': maintenance_request.to_dict()}), 200


@maintenance_bp.route('/', methods=['POST'], strict_slashes=False)
@tenant_required
def create_request():
    """Report an issue at the tenant's leased unit"""
    maintenance_request = maintenance.create_request(current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Maintenance request submitted',
        'request': maintenance_request.to_dict()
    }), 201


@maintenance_bp.route('/<int:request_id>/status', methods=['PUT'])
@manager_or_homeowner_required
def update_request_status(request_id):
    data = request.get_json() or {}
    maintenance_request = maintenance.update_status(
        request_id, current_user(), data.get('status'), data.get('resolution_notes')
    )
    return jsonify({
        'message': 'Maintenance request updated',
        'request': maintenance_request.to_dict()
    }), 200
