from flask import Blueprint, request, jsonify
from keystone import limiter
from keystone.services import invitations
from keystone.utils.decorators import current_user, manager_required

homeowners_bp = Blueprint('homeowners', __name__)


@homeowners_bp.route('/invite/<int:property_id>', methods=['POST'])
@manager_required
def invite_homeowner(property_id):
    """Invite (or directly assign) the homeowner of a property"""
    property, homeowner, token = invitations.invite_homeowner(
        current_user(), property_id, request.get_json() or {}
    )
    if token is None:
        message = 'Existing homeowner assigned to property'
    else:
        message = 'Homeowner invitation sent'
    return jsonify({
        'message': message,
        'property': property.to_dict(include_people=True),
        'homeowner': homeowner.to_dict()
    }), 201 if token else 200


@homeowners_bp.route('/verify-invitation/<token>', methods=['GET'])
@limiter.limit("30 per hour")
def verify_invitation(token):
    """Check a homeowner invitation token before showing the password form"""
    homeowner, invitation, properties = invitations.verify_homeowner_invitation(token)
    return jsonify({
        'valid': True,
        'homeowner': {'name': homeowner.name, 'email': homeowner.email},
        'invitation': invitation.to_dict(),
        'properties': [p.to_dict() for p in properties]
    }), 200


@homeowners_bp.route('/accept-invitation/<token>', methods=['POST'])
@limiter.limit("10 per hour")
def accept_invitation(token):
    """Set a password and activate the homeowner account"""
    data = request.get_json() or {}
    homeowner, invitation, properties = invitations.accept_homeowner_invitation(token, data.get('password'))
    return jsonify({
        'message': 'Invitation accepted. You can now log in.',
        'user': homeowner.to_dict(),
        'invitation': invitation.to_dict(),
        'properties': [p.to_dict() for p in properties]
    }), 200
