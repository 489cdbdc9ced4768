"""Student blueprint: roster CRUD, CSV export and per-student sync."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import login_required

from app.extensions import db
from app.models import Student, SyncStatus
from app.services.student_service import StudentService, StudentValidationError
from app.services.sync_service import SyncService
from app.views.auth import admin_required, json_error

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__, url_prefix='/api/students')


def _start_sync_thread(handle):
    """Run a full sync for *handle* in a background thread."""
    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            try:
                SyncService().sync_one(handle)
            except Exception as e:
                logger.error(f'Background sync for {handle} failed: {e}')

    t = threading.Thread(target=_run, daemon=True)
    t.start()
    return t


def _sync_in_progress(student):
    if student.sync_status != SyncStatus.PENDING.value or not student.sync_started_at:
        return False
    stale_after = current_app.config.get('SYNC_STALE_AFTER_HOURS', 2)
    return student.sync_started_at >= datetime.utcnow() - timedelta(hours=stale_after)


def _get_student_or_404(student_id):
    student = db.session.get(Student, student_id)
    if student is None:
        return None, json_error('Student not found.', 404)
    return student, None


@student_bp.route('', methods=['GET'])
@login_required
def list_students():
    students = Student.query.order_by(Student.name).all()
    return jsonify({
        'success': True,
        'students': [s.to_dict() for s in students],
    })


@student_bp.route('/<int:student_id>', methods=['GET'])
@login_required
def get_student(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error
    return jsonify({'success': True, 'student': student.to_dict(include_submissions=True)})


@student_bp.route('', methods=['POST'])
@admin_required
def create_student():
    data = request.get_json(silent=True) or {}
    try:
        student = StudentService().enroll(
            name=data.get('name'),
            email=data.get('email'),
            codeforces_handle=data.get('codeforcesHandle') or data.get('codeforces_handle'),
            phone=data.get('phone'),
            email_reminders_enabled=data.get('emailRemindersEnabled', True),
        )
    except StudentValidationError as e:
        return json_error(str(e), 400)

    _start_sync_thread(student.codeforces_handle)
    return jsonify({
        'success': True,
        'message': 'Student added. Codeforces data sync has started.',
        'student': student.to_dict(),
    }), 201


@student_bp.route('/<int:student_id>', methods=['PUT'])
@admin_required
def update_student(student_id):
    data = request.get_json(silent=True) or {}
    changes = {
        'name': data.get('name'),
        'email': data.get('email'),
        'phone': data.get('phone'),
        'codeforces_handle': data.get('codeforcesHandle') or data.get('codeforces_handle'),
        'email_reminders_enabled': data.get('emailRemindersEnabled'),
    }
    try:
        student, handle_changed = StudentService().update(student_id, **changes)
    except LookupError:
        return json_error('Student not found.', 404)
    except StudentValidationError as e:
        return json_error(str(e), 400)

    message = 'Student updated.'
    if handle_changed:
        _start_sync_thread(student.codeforces_handle)
        message = 'Student updated. Codeforces data re-sync has started.'
    return jsonify({
        'success': True,
        'message': message,
        'student': student.to_dict(),
    })


@student_bp.route('/<int:student_id>', methods=['DELETE'])
@admin_required
def delete_student(student_id):
    try:
        StudentService().delete(student_id)
    except LookupError:
        return json_error('Student not found.', 404)
    return jsonify({'success': True, 'message': 'Student removed.'})


@student_bp.route('/csv', methods=['GET'])
@login_required
def export_csv():
    csv_text = StudentService.export_csv()
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=students.csv'},
    )


@student_bp.route('/<int:student_id>/sync', methods=['POST'])
@admin_required
def trigger_sync(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error
    if _sync_in_progress(student):
        return json_error(
            f'A sync is already in progress for {student.codeforces_handle}.', 409
        )

    _start_sync_thread(student.codeforces_handle)
    return jsonify({
        'success': True,
        'message': f'Sync started for {student.codeforces_handle}.',
    }), 202


@student_bp.route('/<int:student_id>/sync-status', methods=['GET'])
@login_required
def sync_status(student_id):
    student, error = _get_student_or_404(student_id)
    if error:
        return error
    return jsonify({
        'success': True,
        'status': student.sync_status,
        'error': student.sync_error_message,
        'last_synced_at': student.last_synced_at.isoformat() if student.last_synced_at else None,
        'in_progress': _sync_in_progress(student),
    })
