from flask import Blueprint, current_app, jsonify, request

from app.tasks.scheduler import get_schedule_settings, update_schedule
from app.views.auth import admin_required, json_error

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.route('/cron-settings', methods=['GET'])
@admin_required
def get_cron_settings():
    schedule, timezone = get_schedule_settings(current_app)
    return jsonify({
        'success': True,
        'cronSchedule': schedule,
        'cronTimezone': timezone,
    })


@admin_bp.route('/cron-settings', methods=['PUT'])
@admin_required
def put_cron_settings():
    data = request.get_json(silent=True) or {}
    try:
        settings = update_schedule(
            current_app._get_current_object(),
            data.get('cronSchedule'),
            data.get('cronTimezone'),
        )
    except ValueError as e:
        return json_error(str(e), 400)
    return jsonify({
        'success': True,
        'message': 'Cron settings updated.',
        **settings,
    })
