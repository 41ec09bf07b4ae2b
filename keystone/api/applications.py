from flask import Blueprint, request, jsonify
from keystone.services import applications as intake
from keystone.utils.decorators import (
    current_user, login_required, manager_or_homeowner_required, tenant_required,
)
from keystone.utils.validators import parse_bool

applications_bp = Blueprint('applications', __name__)


@applications_bp.route('/', methods=['POST'], strict_slashes=False)
@tenant_required
def submit_application():
    """Submit a rental application for a vacant unit"""
    application = intake.submit_application(current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Application submitted successfully',
        'application': application.to_dict()
    }), 201


@applications_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_applications():
    """Own applications for tenants, applications to their properties for managers and homeowners"""
    apps = intake.list_applications_for(current_user(), status=request.args.get('status'))
    return jsonify({'applications': [a.to_dict() for a in apps]}), 200


@applications_bp.route('/<int:application_id>', methods=['GET'])
@login_required
def get_application(application_id):
    application = intake.get_application_for(application_id, current_user())
    return jsonify({'application': application.to_dict()}), 200


@applications_bp.route('/<int:application_id>/review', methods=['PUT'])
@manager_or_homeowner_required
def review_application(application_id):
    """Approve, reject or mark an application under review"""
    data = request.get_json() or {}
    application, lease = intake.review_application(
        application_id,
        current_user(),
        data.get('status'),
        review_notes=data.get('review_notes'),
        block_tenant=parse_bool(data.get('block_tenant', False)),
        block_reason=data.get('block_reason'),
    )

    response = {
        'message': f'Application {application.status}',
        'application': application.to_dict()
    }
    if lease is not None:
        response['lease'] = lease.to_dict()
    return jsonify(response), 200


@applications_bp.route('/<int:application_id>', methods=['DELETE'])
@tenant_required
def withdraw_application(application_id):
    """Withdraw a pending application; the record is kept with status withdrawn"""
    application = intake.withdraw_application(application_id, current_user())
    return jsonify({
        'message': 'Application withdrawn',
        'application': application.to_dict()
    }), 200
