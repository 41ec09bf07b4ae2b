from flask import Blueprint, request, jsonify
from keystone.services import announcements
from keystone.utils.decorators import current_user, login_required, manager_or_homeowner_required

announcements_bp = Blueprint('announcements', __name__)


@announcements_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_announcements():
    user = current_user()
    items = announcements.list_announcements_for(user)
    return jsonify({'announcements': [a.to_dict(viewer=user) for a in items]}), 200


@announcements_bp.route('/', methods=['POST'], strict_slashes=False)
@manager_or_homeowner_required
def create_announcement():
    """Managers post to the properties they manage, homeowners to the ones they own"""
    announcement = announcements.create_announcement(current_user(), request.get_json() or {})
    return jsonify({
        'message': 'Announcement posted',
        'announcement': announcement.to_dict()
    }), 201


@announcements_bp.route('/<int:announcement_id>/read', methods=['PUT'])
@login_required
def mark_announcement_read(announcement_id):
    user = current_user()
    announcement = announcements.mark_read(announcement_id, user)
    return jsonify({
        'message': 'Marked as read',
        'announcement': announcement.to_dict(viewer=user)
    }), 200


@announcements_bp.route('/<int:announcement_id>', methods=['DELETE'])
@manager_or_homeowner_required
def delete_announcement(announcement_id):
    announcements.delete_announcement(announcement_id, current_user())
    return jsonify({'message': 'Announcement deleted'}), 200
