from flask import Blueprint, request, jsonify
from keystone import limiter
from keystone.services import invitations
from keystone.utils.decorators import current_user, manager_required

tenant_invitations_bp = Blueprint('tenant_invitations', __name__)


@tenant_invitations_bp.route('/invite/<int:unit_id>', methods=['POST'])
@manager_required
def invite_tenant(unit_id):
    """Reserve a vacant unit and invite a tenant to take it"""
    tenant, invitation, token = invitations.invite_tenant(current_user(), unit_id, request.get_json() or {})
    return jsonify({
        'message': 'Tenant invitation sent',
        'tenant': tenant.to_dict(),
        'invitation': invitation.to_dict()
    }), 201


@tenant_invitations_bp.route('/verify/<token>', methods=['GET'])
@limiter.limit("30 per hour")
def verify_invitation(token):
    tenant, invitation, unit = invitations.verify_tenant_invitation(token)
    return jsonify({
        'valid': True,
        'tenant': {'name': tenant.name, 'email': tenant.email},
        'invitation': invitation.to_dict(),
        'unit': unit.to_dict(include_property=True) if unit else None
    }), 200


@tenant_invitations_bp.route('/accept/<token>', methods=['POST'])
@limiter.limit("10 per hour")
def accept_invitation(token):
    """Set a password, activate the account and sign the lease"""
    data = request.get_json() or {}
    tenant, lease, invitation = invitations.accept_tenant_invitation(token, data.get('password'))
    return jsonify({
        'message': 'Invitation accepted. Your lease is now active.',
        'user': tenant.to_dict(),
        'lease': lease.to_dict(include_parties=True),
        'invitation': invitation.to_dict()
    }), 200
