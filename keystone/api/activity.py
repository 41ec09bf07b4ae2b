from flask import Blueprint, jsonify
from keystone.services import activity
from keystone.utils.decorators import current_user, login_required

activity_bp = Blueprint('activity', __name__)


@activity_bp.route('/<int:property_id>', methods=['GET'])
@login_required
def get_activity(property_id):
    """Announcements and recent maintenance for one property"""
    activities = activity.property_feed(property_id, current_user())
    return jsonify({'count': len(activities), 'activities': activities}), 200
